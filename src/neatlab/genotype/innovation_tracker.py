"""
NEAT Innovation Tracker Module

This module implements the InnovationTracker class for the
NEAT (NeuroEvolution of Augmenting Topologies) algorithm.

Classes:
    InnovationTracker: Issues innovation numbers and node IDs for one run
"""

from itertools import count

class InnovationTracker:
    """
    Tracks structural changes across all genomes of a run.
    Ensures the same structural change gets the same innovation
    number, so that genes can be aligned during crossover.

    Each engine owns its own tracker; two engines never share
    innovation numbers or node IDs.

    Public Methods:
        get_innovation(node_in, node_out): Innovation number for a connection
        get_new_node_id():                 ID for a new hidden node
        ensure_node_counter(start):        Make sure new node IDs start at 'start' or above
    """

    def __init__(self, first_node_id: int = 0):
        """
        Parameters:
            first_node_id: ID of the first hidden node; input and output
                           nodes occupy the IDs below this value
        """
        self._next_innovation_number = count(0)
        self._next_node_id           = first_node_id

        # For each connection ever created, map its endpoints to its innovation number
        self._innovation_numbers: dict[tuple[int, int], int] = {}

    def get_innovation(self, node_in: int, node_out: int) -> int:
        """
        Get innovation number for a connection, identified by its endpoints.
        Returns existing innovation number if this connection was created
        before, otherwise assigns a new innovation number.

        Parameters:
            node_in:  node ID for the 'from' end of the connection
            node_out: node ID for the 'to'   end of the connection

        Returns:
            connection ID (a.k.a. innovation number)
        """
        key = (node_in, node_out)

        # This is a new connection
        if key not in self._innovation_numbers:
            self._innovation_numbers[key] = next(self._next_innovation_number)

        return self._innovation_numbers[key]

    def get_new_node_id(self) -> int:
        node_id = self._next_node_id
        self._next_node_id += 1
        return node_id

    def ensure_node_counter(self, start: int) -> None:
        """
        Raise the node ID counter to at least 'start' (it is never lowered).
        """
        self._next_node_id = max(self._next_node_id, start)

    @property
    def innovation_count(self) -> int:
        return len(self._innovation_numbers)
