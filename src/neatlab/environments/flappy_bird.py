"""
Flappy Bird Environment

A bird flies at a fixed horizontal position while pipes scroll towards it.
The network sees the bird's height and vertical speed plus the position of
the next pipe's gap, and decides whether to flap (one output, flap if > 0.5).
Gravity, flap strength, pipe speed and gap size get harder over time.
"""

import math
import numpy as np
from dataclasses import dataclass, field

from neatlab.environments.base import BaseEnvironment, clamp, to_finite

BIRD_X                 = 86
BASE_GRAVITY           = 0.4
GRAVITY_BOOST          = 0.08
EXTRA_GRAVITY_BOOST    = 0.07
BASE_JUMP_FORCE        = -6.8
JUMP_NERF              = 0.35
EXTRA_JUMP_NERF        = 0.26
BASE_PIPE_SPEED        = 2.9
MAX_PIPE_SPEED         = 5.4
EXTRA_PIPE_SPEED_BOOST = 1.7
PIPE_WIDTH             = 56
BASE_PIPE_GAP          = 132
MIN_PIPE_GAP           = 88
HARD_MIN_PIPE_GAP      = 66
EXTRA_GAP_SHRINK       = 16
PIPE_INTERVAL          = 170
MAX_PIPES              = 5
GAP_MARGIN             = 60

PIPE_REWARD    = 12.0
JUMP_THRESHOLD = 0.5

# Per-trial seeds are spaced by a prime
TRIAL_SEED_STRIDE = 104729

@dataclass
class Difficulty:
    ramp      : float
    gravity   : float
    jump      : float
    pipe_speed: float
    pipe_gap  : int

@dataclass
class Episode:
    y     : float
    vy    : float
    pipes : list[dict]
    rng   : np.random.Generator
    frame : int   = 0
    score : float = 0.0
    alive : bool  = True
    values: dict  = field(default_factory=dict)

class FlappyBirdEnvironment(BaseEnvironment):
    """
    Flappy Bird with a difficulty ramp.

    Every evaluation plays 'eval_trials' episodes whose pipe layouts are
    derived from 'eval_seed', so a genome always gets the same score. An
    episode scores 12 per pipe passed plus a small reward per frame survived
    (more when close to the centre of the gap); fitness is the mean score.

    Parameters:
        width, height: World size
        max_steps:     Frame budget of one episode
        eval_trials:   Episodes per evaluation (clamped to [2, 8])
        eval_seed:     Base seed of the episodes
    """

    name = "Flappy Bird Lite"

    def __init__(self,
                 width      : float = 800,
                 height     : float = 500,
                 max_steps  : int   = 1000,
                 eval_trials: int   = 4,
                 eval_seed  : int   = 1337):
        super().__init__()
        self.input_count  = 5
        self.output_count = 1
        self.width        = float(width)
        self.height       = float(height)
        self.max_steps    = int(max_steps)
        self.eval_trials  = int(clamp(int(eval_trials), 2, 8))
        self.eval_seed    = int(eval_seed)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_max_steps(self, max_steps) -> None:
        number = to_finite(max_steps)
        if number is None:
            return
        self.max_steps = int(clamp(math.floor(number), 160, 3000))

    def set_world_size(self, width, height) -> None:
        width, height = to_finite(width), to_finite(height)
        if width is not None and width > 320:
            self.width = float(math.floor(width))
        if height is not None and height > 220:
            self.height = float(math.floor(height))

    def set_evaluation_profile(self, trials=None, seed=None) -> None:
        trials = to_finite(trials)
        if trials is not None:
            self.eval_trials = int(clamp(math.floor(trials), 2, 8))
        seed = to_finite(seed)
        if seed is not None:
            self.eval_seed = int(seed)

    def update_context(self, context: dict) -> None:
        if isinstance(context, dict):
            self.set_evaluation_profile(context.get('eval_trials'), context.get('eval_seed'))

    def get_context(self) -> dict:
        return {
            'mode'       : "flappy_bird",
            'width'      : self.width,
            'height'     : self.height,
            'eval_trials': self.eval_trials,
            'eval_seed'  : self.eval_seed
        }

    def get_options(self) -> dict:
        options = self.get_context()
        del options['mode']
        return options

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def get_difficulty(self, frame: int = 0) -> Difficulty:
        base_ramp = clamp(frame / max(1400, self.max_steps * 1.4), 0, 1)
        long_ramp = clamp(frame / max(5200, self.max_steps * 4.2), 0, 1)
        pipe_gap  = clamp(BASE_PIPE_GAP
                          - (BASE_PIPE_GAP - MIN_PIPE_GAP) * base_ramp
                          - EXTRA_GAP_SHRINK * long_ramp,
                          HARD_MIN_PIPE_GAP, BASE_PIPE_GAP)
        return Difficulty(
            ramp       = base_ramp + long_ramp * 0.9,
            gravity    = BASE_GRAVITY + GRAVITY_BOOST * base_ramp + EXTRA_GRAVITY_BOOST * long_ramp,
            jump       = BASE_JUMP_FORCE + JUMP_NERF * base_ramp + EXTRA_JUMP_NERF * long_ramp,
            pipe_speed = (BASE_PIPE_SPEED
                          + (MAX_PIPE_SPEED - BASE_PIPE_SPEED) * base_ramp
                          + EXTRA_PIPE_SPEED_BOOST * long_ramp),
            pipe_gap   = int(round(pipe_gap)))

    def trial_seed(self, trial_index: int) -> int:
        return self.eval_seed + trial_index * TRIAL_SEED_STRIDE

    def _next_gap_top(self, previous_gap_top, gap, rng) -> float:
        min_top = GAP_MARGIN
        max_top = max(min_top + 1, self.height - GAP_MARGIN - gap)
        if previous_gap_top is None:
            return rng.uniform(min_top, max_top)

        # Limited drift between consecutive gaps
        drift = max(30.0, gap * 0.38)
        return clamp(previous_gap_top + rng.uniform(-drift, drift), min_top, max_top)

    def _new_pipe(self, after_x, gap, rng, previous_gap_top=None) -> dict:
        safe_gap = int(clamp(round(gap), HARD_MIN_PIPE_GAP, BASE_PIPE_GAP))
        return {
            'x'      : after_x + PIPE_INTERVAL,
            'gap_top': self._next_gap_top(previous_gap_top, safe_gap, rng),
            'gap'    : safe_gap,
            'passed' : False
        }

    def create_episode(self, seed: int | None = None) -> Episode:
        rng        = np.random.default_rng(seed)
        difficulty = self.get_difficulty(0)
        y          = self.height * 0.5 + rng.uniform(-self.height * 0.08, self.height * 0.08)

        pipes          = []
        cursor         = self.width - PIPE_INTERVAL * 0.2
        previous_top   = None
        for _ in range(MAX_PIPES):
            pipe = self._new_pipe(cursor, difficulty.pipe_gap, rng, previous_top)
            pipes.append(pipe)
            cursor, previous_top = pipe['x'], pipe['gap_top']

        return Episode(y=y, vy=0.0, pipes=pipes, rng=rng)

    @staticmethod
    def _next_pipe(pipes: list[dict]) -> dict | None:
        for pipe in pipes:
            if pipe['x'] + PIPE_WIDTH * 0.5 > BIRD_X:
                return pipe
        return pipes[0] if pipes else None

    def _collides(self, y: float, pipe: dict | None) -> bool:
        if y < 0 or y > self.height:
            return True
        if pipe is None or abs(pipe['x'] - BIRD_X) >= PIPE_WIDTH * 0.5:
            return False
        return y < pipe['gap_top'] or y > pipe['gap_top'] + pipe['gap']

    def _inputs(self, y: float, vy: float, pipe: dict | None) -> list[float]:
        if pipe is None:
            return [0.0] * self.input_count
        return [y / self.height,
                vy / 20,
                (pipe['x'] - BIRD_X) / self.width,
                pipe['gap_top'] / self.height,
                (pipe['gap_top'] + pipe['gap']) / self.height]

    def step_episode(self, genome, episode: Episode) -> bool:
        """
        Advance an episode by one frame.

        Returns:
            Whether the episode is over
        """
        if not episode.alive:
            return True

        difficulty = self.get_difficulty(episode.frame)
        pipe       = self._next_pipe(episode.pipes)
        outputs, episode.values = genome.activate_detailed(self._inputs(episode.y, episode.vy, pipe))

        if outputs and outputs[0] > JUMP_THRESHOLD:
            episode.vy = difficulty.jump
        episode.vy += difficulty.gravity
        episode.y  += episode.vy

        for item in episode.pipes:
            item['x'] -= difficulty.pipe_speed

        # Recycle the pipe that left the screen
        if episode.pipes and episode.pipes[0]['x'] < -PIPE_WIDTH:
            last = episode.pipes[-1]
            episode.pipes.pop(0)
            episode.pipes.append(self._new_pipe(last['x'], difficulty.pipe_gap, episode.rng, last['gap_top']))

        next_pipe = self._next_pipe(episode.pipes)
        if self._collides(episode.y, next_pipe):
            episode.alive = False
            return True

        if pipe is not None and pipe['x'] + PIPE_WIDTH * 0.5 < BIRD_X and not pipe['passed']:
            pipe['passed']  = True
            episode.score  += PIPE_REWARD

        gap_center    = next_pipe['gap_top'] + next_pipe['gap'] * 0.5
        center_reward = 1 - min(1.0, abs(episode.y - gap_center) / (next_pipe['gap'] * 0.5))
        episode.score += 0.1 + max(0.0, center_reward) * 0.06 + difficulty.ramp * 0.03
        episode.frame += 1

        if episode.frame >= self.max_steps:
            episode.alive = False
            return True
        return False

    def evaluate(self, genome) -> float:
        total = 0.0
        for i in range(self.eval_trials):
            genome.reset_activations()
            episode = self.create_episode(self.trial_seed(i))
            while not self.step_episode(genome, episode):
                pass
            total += episode.score
        return max(0.0, total / self.eval_trials)

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def create_visual_state(self, genome=None) -> dict:
        """
        Start an unseeded episode for step-by-step display.
        The state holds the episode's random generator and is meant to stay in-process.
        """
        if genome is not None:
            genome.reset_activations()
        episode = self.create_episode()
        return self._visual_state(episode)

    def step_visual(self, genome, state: dict) -> dict:
        if not state or state.get('done'):
            return state
        episode = state['episode']
        self.step_episode(genome, episode)
        return self._visual_state(episode)

    def _visual_state(self, episode: Episode) -> dict:
        return {
            'episode'      : episode,
            'step'         : episode.frame,
            'done'         : not episode.alive,
            'fitness'      : episode.score,
            'bird_x'       : BIRD_X,
            'bird_y'       : episode.y,
            'velocity_y'   : episode.vy,
            'pipes'        : [dict(pipe) for pipe in episode.pipes],
            'pipe_width'   : PIPE_WIDTH,
            'active_values': dict(episode.values)
        }
