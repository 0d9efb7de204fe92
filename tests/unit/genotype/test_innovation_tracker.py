"""
Unit tests for InnovationTracker.
"""

from neatlab.genotype.innovation_tracker import InnovationTracker


class TestInnovationTracker:

    def test_numbers_start_at_zero(self):
        tracker = InnovationTracker()
        assert tracker.get_innovation(0, 2) == 0
        assert tracker.get_innovation(1, 2) == 1

    def test_same_pair_same_number(self):
        tracker = InnovationTracker()
        first = tracker.get_innovation(0, 3)
        tracker.get_innovation(1, 3)
        for _ in range(5):
            assert tracker.get_innovation(0, 3) == first
        assert tracker.innovation_count == 2

    def test_direction_matters(self):
        tracker = InnovationTracker()
        assert tracker.get_innovation(3, 4) != tracker.get_innovation(4, 3)

    def test_node_ids(self):
        tracker = InnovationTracker(first_node_id=3)
        assert tracker.get_new_node_id() == 3
        assert tracker.get_new_node_id() == 4

    def test_ensure_node_counter_never_lowers(self):
        tracker = InnovationTracker(first_node_id=3)
        tracker.ensure_node_counter(10)
        assert tracker.get_new_node_id() == 10
        tracker.ensure_node_counter(5)
        assert tracker.get_new_node_id() == 11

    def test_trackers_are_independent(self):
        tracker1 = InnovationTracker()
        tracker2 = InnovationTracker()
        tracker1.get_innovation(0, 1)
        tracker1.get_innovation(0, 2)
        assert tracker2.get_innovation(0, 2) == 0
