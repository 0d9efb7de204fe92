"""
Unit tests for the target seeking environment and its task variants.
"""

import pytest

from neatlab.environments import TargetSeekerEnvironment, ENVIRONMENT_MODES
from neatlab.environments.target_seeker import _ray_rect_intersect, _point_in_obstacle
from neatlab.genotype import Genome, ConnectionGene
from neatlab.run.config import Config


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def environment():
    return TargetSeekerEnvironment(max_steps=60, eval_seed=11)


def steering_genome(environment):
    """Steers along the offset to the target (inputs 0 and 1 feed outputs x and y)."""
    config = Config(activation="tanh")
    genome = Genome(0, environment.input_count, environment.output_count, config)
    out_x, out_y = environment.input_count, environment.input_count + 1
    genome.conn_genes[0] = ConnectionGene(0, out_x, 4.0, 0, config)
    genome.conn_genes[1] = ConnectionGene(1, out_y, 4.0, 1, config)
    return genome


# ============================================================================
# Geometry helpers
# ============================================================================

class TestGeometry:

    def test_ray_hits_rectangle(self):
        rect = {'x': 10, 'y': -5, 'w': 5, 'h': 10}
        assert _ray_rect_intersect(0, 0, 1, 0, 100, rect) == pytest.approx(10)

    def test_ray_misses_rectangle(self):
        rect = {'x': 10, 'y': 5, 'w': 5, 'h': 10}
        assert _ray_rect_intersect(0, 0, 1, 0, 100, rect) == -1.0

    def test_ray_too_short(self):
        rect = {'x': 10, 'y': -5, 'w': 5, 'h': 10}
        assert _ray_rect_intersect(0, 0, 1, 0, 5, rect) == -1.0

    def test_point_in_obstacle_with_radius(self):
        obstacle = {'x': 10, 'y': 10, 'w': 10, 'h': 10}
        assert _point_in_obstacle(15, 15, obstacle)
        assert not _point_in_obstacle(5, 15, obstacle)
        assert _point_in_obstacle(5, 15, obstacle, radius=6)


# ============================================================================
# Configuration
# ============================================================================

class TestModes:

    @pytest.mark.parametrize("mode", list(ENVIRONMENT_MODES))
    def test_io_counts_follow_mode(self, mode):
        environment = TargetSeekerEnvironment(mode=mode)
        assert environment.input_count == ENVIRONMENT_MODES[mode]['input_count']
        assert environment.output_count == 2

    def test_unknown_mode_falls_back(self):
        environment = TargetSeekerEnvironment(mode="maze")
        assert environment.mode == "target_seeker"

    def test_obstacle_mode_gets_default_obstacles(self):
        environment = TargetSeekerEnvironment()
        environment.set_mode("obstacle_avoid")
        assert len(environment.obstacles) == 2

    def test_leaving_multi_target_clears_targets(self):
        environment = TargetSeekerEnvironment(mode="multi_target",
                                              multi_targets=[{'x': 10, 'y': 10}, {'x': 20, 'y': 20}])
        environment.set_mode("target_seeker")
        assert environment.multi_targets == []


class TestSanitizing:

    def test_target_clamped_into_world(self, environment):
        environment.set_target({'x': -40, 'y': 9999})
        assert environment.user_target == (0, environment.height)

    @pytest.mark.parametrize("target", [None, {'x': 'a', 'y': 3}, {'x': 1}, [1, 2]])
    def test_invalid_target_cleared(self, environment, target):
        environment.set_target({'x': 10, 'y': 10})
        environment.set_target(target)
        assert environment.user_target is None

    def test_clear_target(self, environment):
        environment.set_target({'x': 10, 'y': 10})
        environment.clear_target()
        assert environment.user_target is None

    def test_obstacles_limited_and_clamped(self, environment):
        environment.set_obstacles([{'x': -50, 'y': 50, 'w': 5000, 'h': 1}] * 30)
        assert len(environment.obstacles) == 24
        obstacle = environment.obstacles[0]
        assert obstacle['w'] == pytest.approx(environment.width * 0.45)
        assert obstacle['h'] == 14
        assert obstacle['x'] == 0
        assert obstacle['x'] + obstacle['w'] <= environment.width

    def test_obstacle_defaults(self, environment):
        environment.set_obstacles([{}, "junk"])
        assert environment.obstacles == [{'x': 0.0, 'y': 0.0, 'w': 28.0, 'h': 28.0}] * 2

    def test_obstacles_not_a_list(self, environment):
        environment.set_obstacles("walls")
        assert environment.obstacles == []

    def test_multi_targets_limited_and_clamped(self, environment):
        targets = [{'x': 100 * i, 'y': -10} for i in range(8)] + [{'x': None, 'y': 1}]
        environment.set_multi_targets(targets)
        assert len(environment.multi_targets) == 5
        assert all(y == 0 for _, y in environment.multi_targets)

    def test_world_size(self, environment):
        environment.set_world_size(100, 300)
        assert (environment.width, environment.height) == (760, 300)
        environment.set_world_size("wide", 99999.7)
        assert environment.height == 99999

    def test_world_shrink_moves_target(self, environment):
        environment.set_target({'x': 700, 'y': 400})
        environment.set_world_size(300, 200)
        assert environment.user_target == (300, 200)

    def test_max_steps_floor(self, environment):
        environment.set_max_steps(3)
        assert environment.max_steps == 40
        environment.set_max_steps("lots")
        assert environment.max_steps == 40

    def test_update_context(self, environment):
        environment.update_context({'mode': "multi_target",
                                    'multi_targets': [{'x': 10, 'y': 10}, {'x': 50, 'y': 60}],
                                    'target': {'x': 5, 'y': 5}})
        context = environment.get_context()
        assert context['mode'] == "multi_target"
        assert context['multi_targets'] == [{'x': 10, 'y': 10}, {'x': 50, 'y': 60}]
        assert context['target'] == {'x': 5, 'y': 5}
        assert environment.input_count == 9

    def test_options_rebuild_current_state(self, environment):
        environment.update_context({'mode': "obstacle_avoid",
                                    'obstacles': [{'x': 50, 'y': 60, 'w': 30, 'h': 30}],
                                    'target': {'x': 300, 'y': 200}})
        environment.set_world_size(800, 500)
        rebuilt = TargetSeekerEnvironment(**environment.get_options())
        assert rebuilt.get_context() == environment.get_context()
        assert rebuilt.input_count == 10
        assert rebuilt.eval_seed == 11

    def test_update_context_ignores_non_dict(self, environment):
        environment.update_context(["mode"])
        assert environment.mode == "target_seeker"


# ============================================================================
# Evaluation
# ============================================================================

class TestEvaluate:

    @pytest.mark.parametrize("mode", list(ENVIRONMENT_MODES))
    def test_non_negative_and_reproducible(self, mode):
        environment = TargetSeekerEnvironment(mode=mode, max_steps=60, eval_seed=3)
        genome = steering_genome(environment)
        fitness = environment.evaluate(genome)
        assert fitness >= 0.0
        assert environment.evaluate(genome) == fitness

    def test_steering_beats_idle(self, environment):
        idle = Genome(1, environment.input_count, environment.output_count, Config())
        assert environment.evaluate(steering_genome(environment)) > environment.evaluate(idle)

    def test_reaching_target_earns_bonus(self):
        environment = TargetSeekerEnvironment(max_steps=200, eval_seed=1)
        environment.set_target({'x': 380, 'y': 230})
        assert environment.evaluate(steering_genome(environment)) > 100


class TestVisualState:

    def test_replay(self, environment):
        genome = steering_genome(environment)
        state  = environment.create_visual_state(genome)
        assert state['step'] == 0
        assert state['done'] is False

        for _ in range(environment.max_steps + 5):
            state = environment.step_visual(genome, state)
        assert state['done'] is True
        assert len(state['trail']) <= 40
        assert state['step'] <= environment.max_steps
        assert set(state['active_values']) >= {0, 1}

    def test_step_after_done_is_no_op(self, environment):
        state = {'done': True, 'step': 3}
        assert environment.step_visual(None, state) is state
