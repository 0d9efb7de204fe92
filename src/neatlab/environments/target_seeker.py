"""
Target Seeker Environment

A point agent moving in a rectangular world has to reach a target. The
network receives the offset and distance to the target, its own velocity
and position, and steers by adding thrust to its velocity (two outputs).

Three task variants (see 'modes.py'):
    target_seeker:  reach a single target (user placed or random)
    obstacle_avoid: reach the target without bumping into rectangular walls;
                    five distance rays replace the position inputs
    multi_target:   collect an ordered list of targets
"""

import math
import numpy as np

from neatlab.environments.base  import BaseEnvironment, clamp, to_finite
from neatlab.environments.modes import ENVIRONMENT_MODES, DEFAULT_ENV_MODE, normalize_environment_mode

# Evaluation
NUM_TRIALS        = 3
REACH_RADIUS      = 20.0
COLLISION_RADIUS  = 7.0
COLLISION_PENALTY = 5.0
SPAWN_PADDING     = 50.0

# Motion
THRUST   = 1.5
DAMPING  = 0.9
BOUNCE   = -0.5
RECOIL   = -0.4

# Distance sensors (obstacle mode)
RAY_LENGTH = 170.0
RAY_ANGLES = (0.0, -math.pi / 3, -math.pi / 6, math.pi / 6, math.pi / 3)

# Limits on host supplied data
MAX_OBSTACLES     = 24
MAX_MULTI_TARGETS = 5
MIN_OBSTACLE_SIZE = 14.0
DEFAULT_OBSTACLE  = 28.0
MIN_WORLD_SIZE    = 120
MIN_MAX_STEPS     = 40
TRAIL_LENGTH      = 40

def _as_point(point) -> tuple[float, float] | None:
    if not isinstance(point, dict):
        return None
    x = to_finite(point.get('x'))
    y = to_finite(point.get('y'))
    if x is None or y is None:
        return None
    return x, y

def _ray_rect_intersect(origin_x, origin_y, dir_x, dir_y, max_distance, rect) -> float:
    """
    Distance along the ray to the rectangle (slab method); -1 if the ray misses it.
    """
    t_min, t_max = 0.0, max_distance

    if abs(dir_x) < 1e-6:
        if origin_x < rect['x'] or origin_x > rect['x'] + rect['w']:
            return -1.0
    else:
        tx1 = (rect['x'] - origin_x) / dir_x
        tx2 = (rect['x'] + rect['w'] - origin_x) / dir_x
        t_min = max(t_min, min(tx1, tx2))
        t_max = min(t_max, max(tx1, tx2))

    if abs(dir_y) < 1e-6:
        if origin_y < rect['y'] or origin_y > rect['y'] + rect['h']:
            return -1.0
    else:
        ty1 = (rect['y'] - origin_y) / dir_y
        ty2 = (rect['y'] + rect['h'] - origin_y) / dir_y
        t_min = max(t_min, min(ty1, ty2))
        t_max = min(t_max, max(ty1, ty2))

    if t_max < 0 or t_min > t_max:
        return -1.0
    return max(t_min, 0.0)

def _point_in_obstacle(x, y, obstacle, radius=0.0) -> bool:
    return (x + radius >= obstacle['x'] and x - radius <= obstacle['x'] + obstacle['w'] and
            y + radius >= obstacle['y'] and y - radius <= obstacle['y'] + obstacle['h'])

class TargetSeekerEnvironment(BaseEnvironment):
    """
    Steering task with three variants (single target, obstacles, multiple targets).

    Fitness of a trial is the sum over steps of the relative progress made
    towards the current target, plus a bonus of (max_steps - step) * 2 for
    every target reached, minus a penalty for every collision. The fitness
    of a genome is the mean over three trials with random starting points.

    Parameters:
        width, height: World size
        max_steps:     Step budget of one trial
        mode:          Task variant
        obstacles:     Rectangles {x, y, w, h} (obstacle mode)
        multi_targets: Ordered targets {x, y} (multi-target mode)
        target:        User placed target {x, y}
        eval_seed:     Seed for starting points and random targets (None = random)
    """

    name = "NEAT Multi-Task Environment"

    def __init__(self,
                 width        : float = 760,
                 height       : float = 460,
                 max_steps    : int   = 400,
                 mode         : str   = DEFAULT_ENV_MODE,
                 obstacles    : list | None = None,
                 multi_targets: list | None = None,
                 target       : dict | None = None,
                 eval_seed    : int  | None = None):
        super().__init__()
        self.width        : float = float(width)
        self.height       : float = float(height)
        self.max_steps    : int   = int(max_steps)
        self.mode         : str   = normalize_environment_mode(mode)
        self.eval_seed    : int | None = eval_seed
        self.user_target  : tuple[float, float] | None = None
        self.obstacles    : list[dict] = []
        self.multi_targets: list[tuple[float, float]] = []

        self.set_mode(self.mode)
        self.set_obstacles(obstacles if obstacles is not None
                           else ENVIRONMENT_MODES[self.mode].get('default_obstacles', []))
        self.set_multi_targets(multi_targets or [])
        if target is not None:
            self.set_target(target)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_mode(self, mode) -> None:
        self.mode = normalize_environment_mode(mode)
        profile = ENVIRONMENT_MODES[self.mode]
        self.input_count  = profile['input_count']
        self.output_count = profile['output_count']

        if self.mode == "obstacle_avoid" and not self.obstacles:
            self.set_obstacles(profile.get('default_obstacles', []))
        if self.mode != "multi_target":
            self.multi_targets = []

    def set_target(self, target) -> None:
        point = _as_point(target)
        if point is None:
            self.user_target = None
            return
        self.user_target = (clamp(point[0], 0, self.width), clamp(point[1], 0, self.height))

    def clear_target(self) -> None:
        self.user_target = None

    def _sanitize_obstacle(self, obstacle) -> dict:
        def value(key, default):
            number = to_finite(obstacle.get(key)) if isinstance(obstacle, dict) else None
            return number if number else default

        w = clamp(value('w', DEFAULT_OBSTACLE), MIN_OBSTACLE_SIZE, max(MIN_OBSTACLE_SIZE, self.width  * 0.45))
        h = clamp(value('h', DEFAULT_OBSTACLE), MIN_OBSTACLE_SIZE, max(MIN_OBSTACLE_SIZE, self.height * 0.45))
        x = clamp(value('x', 0.0), 0, max(0.0, self.width  - w))
        y = clamp(value('y', 0.0), 0, max(0.0, self.height - h))
        return {'x': x, 'y': y, 'w': w, 'h': h}

    def set_obstacles(self, obstacles) -> None:
        if not isinstance(obstacles, (list, tuple)):
            self.obstacles = []
            return
        self.obstacles = [self._sanitize_obstacle(obstacle) for obstacle in obstacles[:MAX_OBSTACLES]]

    def set_multi_targets(self, targets) -> None:
        if not isinstance(targets, (list, tuple)):
            self.multi_targets = []
            return
        points = [_as_point(target) for target in targets[:MAX_MULTI_TARGETS]]
        self.multi_targets = [(clamp(x, 0, self.width), clamp(y, 0, self.height))
                              for x, y in (p for p in points if p is not None)]

    def update_context(self, context: dict) -> None:
        if not isinstance(context, dict):
            return
        if context.get('mode'):
            self.set_mode(context['mode'])
        if isinstance(context.get('obstacles'), list):
            self.set_obstacles(context['obstacles'])
        if isinstance(context.get('multi_targets'), list):
            self.set_multi_targets(context['multi_targets'])
        if 'target' in context:
            self.set_target(context['target'])

    def get_context(self) -> dict:
        return {
            'mode'         : self.mode,
            'width'        : self.width,
            'height'       : self.height,
            'obstacles'    : [dict(obstacle) for obstacle in self.obstacles],
            'multi_targets': [{'x': x, 'y': y} for x, y in self.multi_targets],
            'target'       : None if self.user_target is None else {'x': self.user_target[0],
                                                                    'y': self.user_target[1]}
        }

    def get_options(self) -> dict:
        return dict(self.get_context(), eval_seed=self.eval_seed)

    def set_max_steps(self, max_steps) -> None:
        number = to_finite(max_steps)
        if number is None:
            return
        self.max_steps = max(MIN_MAX_STEPS, int(math.floor(number)))

    def set_world_size(self, width, height) -> None:
        width, height = to_finite(width), to_finite(height)
        if width is not None and width > MIN_WORLD_SIZE:
            self.width = float(math.floor(width))
        if height is not None and height > MIN_WORLD_SIZE:
            self.height = float(math.floor(height))

        # Keep everything inside the (possibly smaller) world
        if self.user_target is not None:
            self.set_target({'x': self.user_target[0], 'y': self.user_target[1]})
        self.set_obstacles(list(self.obstacles))
        self.set_multi_targets([{'x': x, 'y': y} for x, y in self.multi_targets])

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def _random_point(self, rng: np.random.Generator, padding: float = SPAWN_PADDING) -> tuple[float, float]:
        return (padding + rng.random() * max(1.0, self.width  - 2 * padding),
                padding + rng.random() * max(1.0, self.height - 2 * padding))

    def _raycast_inputs(self, x, y, heading, obstacles) -> list[float]:
        inputs = []
        for ray_angle in RAY_ANGLES:
            angle = heading + ray_angle
            dx, dy = math.cos(angle), math.sin(angle)
            min_distance = RAY_LENGTH
            for obstacle in obstacles:
                hit = _ray_rect_intersect(x, y, dx, dy, RAY_LENGTH, obstacle)
                if hit >= 0:
                    min_distance = min(min_distance, hit)
            inputs.append(min_distance / RAY_LENGTH)
        return inputs

    def _build_inputs(self, dx, dy, dist, vx, vy, x, y, heading, target_index, num_targets, obstacles):
        diagonal = max(1.0, math.hypot(self.width, self.height))
        base = [dx / self.width,
                dy / self.height,
                dist / diagonal,
                vx / 10,
                vy / 10,
                (x / self.width)  * 2 - 1,
                (y / self.height) * 2 - 1]

        if self.mode == "target_seeker":
            inputs = base
        elif self.mode == "obstacle_avoid":
            inputs = base[:5] + self._raycast_inputs(x, y, heading, obstacles)
        else:
            num_targets = max(1, num_targets)
            inputs = base + [target_index / max(1, num_targets - 1),
                             (num_targets - target_index) / num_targets]

        inputs = inputs[:self.input_count]
        return inputs + [0.0] * (self.input_count - len(inputs))

    def _move(self, outputs, vx, vy, x, y):
        out_x = outputs[0] if len(outputs) > 0 else 0.0
        out_y = outputs[1] if len(outputs) > 1 else 0.0

        vx = (vx + out_x * THRUST) * DAMPING
        vy = (vy + out_y * THRUST) * DAMPING
        x += vx
        y += vy

        if x < 0 or x > self.width:
            vx *= BOUNCE
        if y < 0 or y > self.height:
            vy *= BOUNCE
        return vx, vy, clamp(x, 0, self.width), clamp(y, 0, self.height)

    def _trial_targets(self, rng: np.random.Generator) -> list[tuple[float, float]]:
        if self.mode == "multi_target":
            if len(self.multi_targets) >= 2:
                return list(self.multi_targets)
            return [self._random_point(rng, 60.0) for _ in range(3)]

        if self.user_target is not None:
            return [self.user_target]
        return [self._random_point(rng)]

    def evaluate(self, genome) -> float:
        rng       = np.random.default_rng(self.eval_seed)
        obstacles = list(self.obstacles) if self.mode == "obstacle_avoid" else []
        max_steps = self.max_steps
        total_fitness = 0.0

        for _ in range(NUM_TRIALS):
            genome.reset_activations()
            x, y   = self._random_point(rng)
            vx, vy = 0.0, 0.0
            heading = 0.0
            trial_fitness     = 0.0
            collision_penalty = 0.0

            targets      = self._trial_targets(rng)
            target_index = 0
            tx, ty       = targets[target_index]
            initial_distance = max(1.0, math.hypot(tx - x, ty - y))

            for step in range(max_steps):
                prev_x, prev_y = x, y
                dx, dy = tx - x, ty - y
                dist   = max(1e-6, math.hypot(dx, dy))

                inputs  = self._build_inputs(dx, dy, dist, vx, vy, x, y, heading,
                                             target_index, len(targets), obstacles)
                outputs = genome.activate(inputs)
                vx, vy, x, y = self._move(outputs, vx, vy, x, y)
                heading = math.atan2(vy, vx or 1e-6)

                if obstacles and any(_point_in_obstacle(x, y, o, COLLISION_RADIUS) for o in obstacles):
                    x, y    = prev_x, prev_y
                    vx     *= RECOIL
                    vy     *= RECOIL
                    collision_penalty += COLLISION_PENALTY

                new_distance   = math.hypot(tx - x, ty - y)
                trial_fitness += (initial_distance - new_distance) / max(initial_distance, 1.0)

                if new_distance < REACH_RADIUS:
                    trial_fitness += (max_steps - step) * 2
                    if self.mode == "multi_target" and target_index < len(targets) - 1:
                        target_index += 1
                        tx, ty = targets[target_index]
                        initial_distance = max(1.0, math.hypot(tx - x, ty - y))
                    else:
                        break

            total_fitness += max(0.0, trial_fitness - collision_penalty)

        return max(0.0, total_fitness / NUM_TRIALS)

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def create_visual_state(self, genome=None) -> dict:
        rng = np.random.default_rng()
        tx, ty = self.user_target if self.user_target is not None else self._random_point(rng)
        x, y   = self._random_point(rng)
        if genome is not None:
            genome.reset_activations()
        return {
            'step'         : 0,
            'done'         : False,
            'fitness'      : 0.0,
            'agent_x'      : x,
            'agent_y'      : y,
            'velocity_x'   : 0.0,
            'velocity_y'   : 0.0,
            'target_x'     : tx,
            'target_y'     : ty,
            'trail'        : [],
            'active_values': dict(genome.last_activations) if genome is not None else {}
        }

    def step_visual(self, genome, state: dict) -> dict:
        if not state or state.get('done'):
            return state

        tx, ty = self.user_target if self.user_target is not None else (state['target_x'], state['target_y'])
        x, y   = state['agent_x'], state['agent_y']
        vx, vy = state['velocity_x'], state['velocity_y']
        dx, dy = tx - x, ty - y
        dist   = max(1e-6, math.hypot(dx, dy))
        heading = math.atan2(vy, vx or 1e-6)

        obstacles = self.obstacles if self.mode == "obstacle_avoid" else []
        inputs = self._build_inputs(dx, dy, dist, vx, vy, x, y, heading, 0, 1, obstacles)
        outputs, values = genome.activate_detailed(inputs)
        vx, vy, x, y = self._move(outputs, vx, vy, x, y)

        trail = list(state.get('trail', [])) + [{'x': x, 'y': y}]
        trail = trail[-TRAIL_LENGTH:]
        step  = state['step'] + 1

        return dict(state,
                    step          = step,
                    done          = step >= self.max_steps or math.hypot(tx - x, ty - y) < REACH_RADIUS,
                    fitness       = state.get('fitness', 0.0) + 1 / (dist + 1),
                    agent_x       = x,
                    agent_y       = y,
                    velocity_x    = vx,
                    velocity_y    = vy,
                    target_x      = tx,
                    target_y      = ty,
                    trail         = trail,
                    active_values = dict(values))
