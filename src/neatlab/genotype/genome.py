"""
NEAT Genome Module

This module implements the Genome class for the NEAT
(NeuroEvolution of Augmenting Topologies) algorithm.

Classes:
    Genome: Complete genome representing a neural network structure
"""

import random
from typing import TYPE_CHECKING

from neatlab.run.config                  import Config
from neatlab.genotype.connection_gene    import ConnectionGene
from neatlab.genotype.innovation_tracker import InnovationTracker
from neatlab.genotype.node_gene          import NodeType, NodeGene
if TYPE_CHECKING:
    from neatlab.phenotype import Network

class Genome:
    """
    A NEAT genome representing a neural network as a collection of node and connection genes.

    A genome encodes the structure and parameters of a neural network at the genotype level:
    - Node genes: describe network nodes (input, hidden, output) with their bias
    - Connection genes: describe weighted connections between nodes, each with a unique
      innovation number for tracking historical markings during crossover

    A new genome contains only input and output nodes and no connections. Via mutation
    operations genomes grow by adding nodes and connections. Genes are never deleted;
    the add-node mutation disables the connection it splits instead.

    Node numbering convention:
        - Input nodes:  [0, num_inputs)
        - Output nodes: [num_inputs, num_inputs + num_outputs)
        - Hidden nodes: [num_inputs + num_outputs, ...)

    Attributes:
        id:               Genome ID (unique within a run)
        node_genes:       Dictionary mapping node IDs to NodeGene objects
        conn_genes:       Dictionary mapping innovation numbers to ConnectionGene objects
        activation:       Name of the activation function of hidden and output nodes
        fitness:          Raw fitness, as returned by the environment
        adjusted_fitness: Fitness divided by the size of the genome's species
        species_id:       ID of the species the genome belongs to (None if not speciated)
        last_activations: Value of every node after the latest network evaluation

    Public Properties:
        input_nodes:                List of all input node genes
        output_nodes:               List of all output node genes
        hidden_nodes:               List of all hidden node genes
        number_nodes:               Number of node genes
        number_connections_enabled: Number of enabled connection genes
        network:                    The (cached) phenotype of this genome

    Public Methods:
        activate(inputs):                      Evaluate the network, return the outputs
        activate_detailed(inputs):             Evaluate the network, return outputs and node values
        compatibility(other):                  Compatibility distance to another genome
        mutate_weights(rng):                   Perturb or replace connection weights
        mutate_add_connection(tracker, ...):   Add a new connection
        mutate_add_node(tracker, rng):         Split an enabled connection with a new node
        set_activation(name):                  Change the activation function of all nodes
        clone():                               Return an independent copy
        to_dict():                             Convert genome to dictionary representation

    Static/Class Methods:
        crossover(fitter, other, rng): Create offspring from two parents
        from_dict(genome_dict):        Create a genome from a dictionary description
    """

    def __init__(self,
                 genome_id  : int,
                 num_inputs : int,
                 num_outputs: int,
                 config     : Config | None = None,
                 activation : str    | None = None):
        """
        Initialize a minimal Genome (input and output nodes, no connections).

        Parameters:
            genome_id:   ID of the genome
            num_inputs:  Number of input nodes
            num_outputs: Number of output nodes
            config:      Stores configuration parameters (defaults are used if None)
            activation:  Activation function name (defaults to 'config.activation')
        """
        self._config     = config if config is not None else Config()
        self.id          = genome_id
        self.num_inputs  = num_inputs
        self.num_outputs = num_outputs
        self.activation  = activation or self._config.activation

        self.node_genes: dict[int, NodeGene]       = {}  # node ID => node gene
        self.conn_genes: dict[int, ConnectionGene] = {}  # innovation number => connection gene

        self.fitness         : float            = 0.0
        self.adjusted_fitness: float            = 0.0
        self.species_id      : int | None       = None
        self.last_activations: dict[int, float] = {}

        # Phenotype cache, rebuilt after structural changes
        self._network: 'Network | None' = None

        for node_id in range(num_inputs):
            self.node_genes[node_id] = NodeGene(node_id, NodeType.INPUT, bias=0.0)

        for i in range(num_outputs):
            node_id = num_inputs + i
            self.node_genes[node_id] = NodeGene(node_id, NodeType.OUTPUT, bias=0.0,
                                                activation_name=self.activation)

    @property
    def input_nodes(self) -> list[NodeGene]:
        return sorted((node for node in self.node_genes.values() if node.type == NodeType.INPUT),
                      key=lambda node: node.id)

    @property
    def output_nodes(self) -> list[NodeGene]:
        return sorted((node for node in self.node_genes.values() if node.type == NodeType.OUTPUT),
                      key=lambda node: node.id)

    @property
    def hidden_nodes(self) -> list[NodeGene]:
        return sorted((node for node in self.node_genes.values() if node.type == NodeType.HIDDEN),
                      key=lambda node: node.id)

    @property
    def number_nodes(self) -> int:
        return len(self.node_genes)

    @property
    def number_connections_enabled(self) -> int:
        return sum(1 for conn in self.conn_genes.values() if conn.enabled)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def network(self) -> 'Network':
        # Imported here; the phenotype package depends on the genotype package
        from neatlab.phenotype.network import Network
        if self._network is None:
            self._network = Network(self)
        return self._network

    def invalidate_network(self) -> None:
        """
        Drop the cached network; must be called after editing genes directly.
        """
        self._network = None

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def activate(self, inputs: list[float]) -> list[float]:
        """
        Evaluate the network encoded by this genome.

        Parameters:
            inputs: Values of the input nodes (missing values read as 0.0)

        Returns:
            The values of the output nodes, in ascending node ID order
        """
        outputs, _ = self.activate_detailed(inputs)
        return outputs

    def activate_detailed(self, inputs: list[float]) -> tuple[list[float], dict[int, float]]:
        """
        Evaluate the network and also return the value computed for every node.
        The node values are stored in 'last_activations'; recurrent connections
        read from them on the next call.
        """
        outputs, values = self.network.forward_pass(inputs, self.last_activations)
        self.last_activations = values
        return outputs, values

    def reset_activations(self) -> None:
        """
        Forget the node values of previous evaluations (the state of recurrent connections).
        """
        self.last_activations = {}

    def set_activation(self, activation_name: str) -> None:
        """
        Use a new activation function for all hidden and output nodes.
        All weights and biases are kept.
        """
        for node in self.node_genes.values():
            node.set_activation(activation_name)
        self.activation = activation_name
        self._network   = None

    # ------------------------------------------------------------------
    # Speciation
    # ------------------------------------------------------------------

    def compatibility(self, other: 'Genome') -> float:
        """
        Calculate the compatibility distance between this genome and another.

           distance = (c1 * E + c2 * D) / N + c3 * W̄

        Where:
        - E = number of excess connection genes
        - D = number of disjoint connection genes
        - N = number of connection genes in the larger genome (1 for small genomes)
        - W̄ = average weight difference of matching connection genes
        - c1, c2, c3 = weight of the various terms (from configuration)

        Parameters:
            other: the genome relative to which we are calculating the distance

        Returns:
            the compatibility distance between this genome and 'other'
        """
        innovs1 = set(self.conn_genes.keys())
        innovs2 = set(other.conn_genes.keys())
        if not innovs1 and not innovs2:
            return 0.0

        # Find matching, disjoint, and excess genes
        matching_innovs     =  innovs1 & innovs2
        non_matching_innovs = (innovs1 | innovs2) - matching_innovs

        max_innov1 = max(innovs1) if innovs1 else -1
        max_innov2 = max(innovs2) if innovs2 else -1
        overlap    = min(max_innov1, max_innov2)

        # Excess   genes: beyond the smaller genome's max innovation number
        # Disjoint genes: within the overlapping range but not matching
        num_excess   = sum(1 for innov in non_matching_innovs if innov > overlap)
        num_disjoint = len(non_matching_innovs) - num_excess

        # Average connection weight difference for matching connection genes
        avg_weight_diff = 0.0
        if matching_innovs:
            weight_diff = sum(abs(self.conn_genes[i].weight - other.conn_genes[i].weight) for i in matching_innovs)
            avg_weight_diff = weight_diff / len(matching_innovs)

        N = max(len(self.conn_genes), len(other.conn_genes))
        if N < self._config.compatibility_normalize_threshold:
            N = 1

        return ((self._config.excess_coeff   * num_excess +
                 self._config.disjoint_coeff * num_disjoint) / N +
                 self._config.weight_coeff   * avg_weight_diff)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def mutate_weights(self, rng=None) -> None:
        """
        Give every connection gene a chance to perturb or replace its weight.
        """
        rng = rng or random
        for conn in self.conn_genes.values():
            conn.mutate(rng)

    def mutate_add_connection(self,
                              tracker       : InnovationTracker,
                              max_attempts  : int  = 30,
                              allow_recurrent: bool = False,
                              rng=None) -> bool:
        """
        Add a new connection between two existing nodes.

        The two ends of the new connection are selected at random, however
        we cannot add a connection:
         + starting at an OUTPUT node
         + ending   at an INPUT  node
         + from a node to itself
         + between two nodes for which a connection gene already exists
           (whether enabled or disabled)
         + which would create a cycle (unless 'allow_recurrent' is set)

        Parameters:
            tracker:         Issues innovation numbers
            max_attempts:    Number of random endpoint pairs tried before giving up
            allow_recurrent: Whether the new connection may close a cycle
            rng:             Source of randomness (defaults to the 'random' module)

        Returns:
            Whether a connection was added (the genome is unchanged otherwise)
        """
        rng = rng or random

        from_candidates = [node.id for node in self.node_genes.values() if node.type != NodeType.OUTPUT]
        to_candidates   = [node.id for node in self.node_genes.values() if node.type != NodeType.INPUT]
        if not from_candidates or not to_candidates:
            return False

        # Get the node pairs already connected by a connection gene.
        connected_nodes = {(conn.node_in, conn.node_out) for conn in self.conn_genes.values()}

        for _ in range(max_attempts):
            node_in  = rng.choice(from_candidates)
            node_out = rng.choice(to_candidates)

            # Carry out quick checks first
            if node_in == node_out:
                continue
            if (node_in, node_out) in connected_nodes:
                continue

            # Carry out expensive check last
            if not allow_recurrent and self._would_create_cycle(node_in, node_out):
                continue

            innovation = tracker.get_innovation(node_in, node_out)
            weight     = rng.uniform(-self._config.weight_init_range, self._config.weight_init_range)
            self.conn_genes[innovation] = ConnectionGene(node_in, node_out, weight, innovation, self._config)
            self._network = None
            return True

        return False

    def mutate_add_node(self, tracker: InnovationTracker, rng=None) -> bool:
        """
        Split an existing connection by adding a new node.

        The connection to split is selected at random from all 'enabled' connections
        and gets disabled. It is replaced by two new connections:
         + old source -> new node (weight 1.0)
         + new node -> old target (weight of the old connection)
        so that the network initially behaves much like before.

        Parameters:
            tracker: Issues the new node ID and innovation numbers
            rng:     Source of randomness (defaults to the 'random' module)

        Returns:
            Whether a node was added (False if there is no enabled connection)
        """
        rng = rng or random

        enabled_conn_genes = [gene for gene in self.conn_genes.values() if gene.enabled]
        if not enabled_conn_genes:
            return False
        split_conn_gene = rng.choice(enabled_conn_genes)

        # The connection being split must be disabled.
        split_conn_gene.enabled = False

        new_node_id = tracker.get_new_node_id()
        bias        = rng.uniform(-0.1, 0.1)
        self.node_genes[new_node_id] = NodeGene(new_node_id, NodeType.HIDDEN, bias, self.activation)

        # First new connection: input -> new node (weight = 1.0)
        innov1 = tracker.get_innovation(split_conn_gene.node_in, new_node_id)
        self.conn_genes[innov1] = ConnectionGene(split_conn_gene.node_in, new_node_id, 1.0, innov1, self._config)

        # Second new connection: new node -> output (weight = old weight)
        innov2 = tracker.get_innovation(new_node_id, split_conn_gene.node_out)
        self.conn_genes[innov2] = ConnectionGene(new_node_id, split_conn_gene.node_out,
                                                 split_conn_gene.weight, innov2, self._config)

        self._network = None
        return True

    def _would_create_cycle(self, from_node: int, to_node: int) -> bool:
        """
        Check if adding a connection from_node -> to_node would create a cycle.
        Uses DFS to check if there's already a path from 'to_node' back to 'from_node'.
        Considers ALL connections (both enabled and disabled), so that re-enabling
        a gene during crossover can never close a cycle.
        """
        if from_node == to_node:
            return True

        adjacency: dict[int, list[int]] = {}
        for conn_gene in self.conn_genes.values():
            adjacency.setdefault(conn_gene.node_in, []).append(conn_gene.node_out)

        # If we can reach 'from_node' starting at 'to_node', then adding a
        # connection 'from_node' -> 'to_node' would create a network cycle
        visited = set()
        stack   = [to_node]
        while stack:
            current = stack.pop()
            if current == from_node:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(adjacency.get(current, ()))

        return False

    # ------------------------------------------------------------------
    # Reproduction
    # ------------------------------------------------------------------

    @staticmethod
    def crossover(fitter: 'Genome', other: 'Genome', rng=None) -> 'Genome':
        """
        Perform NEAT crossover between two parents to create offspring.

        NEAT crossover rules:
        - Matching genes: randomly inherit from either parent; if the gene is
          disabled in either parent, the child's gene is disabled with
          probability 'disable_inherit_prob' and enabled otherwise
        - Disjoint/excess genes: inherit from the fitter parent only

        Parameters:
            fitter: the parent with the higher fitness
            other:  the other parent
            rng:    Source of randomness (defaults to the 'random' module)

        Returns:
            New offspring genome (with the fitter parent's ID and activation)
        """
        rng       = rng or random
        config    = fitter._config
        offspring = Genome(fitter.id, 0, 0, config, fitter.activation)
        offspring.num_inputs  = fitter.num_inputs
        offspring.num_outputs = fitter.num_outputs

        # Start by deciding which connections are part of the new network.
        # Once this is decided, the ends of these connections give us the
        # set of nodes which are part of the new network.
        for innov in sorted(fitter.conn_genes):
            fitter_gene = fitter.conn_genes[innov]
            other_gene  = other.conn_genes.get(innov)

            # Disjoint & excess connections come from the fitter parent
            if other_gene is None:
                offspring.conn_genes[innov] = fitter_gene.copy()
                continue

            conn_gene = (fitter_gene if rng.random() < 0.5 else other_gene).copy()
            if not fitter_gene.enabled or not other_gene.enabled:
                conn_gene.enabled = rng.random() >= config.disable_inherit_prob
            offspring.conn_genes[innov] = conn_gene

        # Collect the IDs of all nodes needed by the offspring's connections,
        # plus all input and output nodes (even if they have no connections)
        node_ids = set(range(fitter.num_inputs + fitter.num_outputs))
        for conn_gene in offspring.conn_genes.values():
            node_ids.add(conn_gene.node_in)
            node_ids.add(conn_gene.node_out)

        for nid in sorted(node_ids):
            if nid in fitter.node_genes:
                node_gene = fitter.node_genes[nid]
            elif nid in other.node_genes:
                node_gene = other.node_genes[nid]
            else:
                raise RuntimeError(f"node ID {nid} cannot be found in either parent")
            offspring.node_genes[nid] = node_gene.copy()
            offspring.node_genes[nid].set_activation(offspring.activation)

        return offspring

    def clone(self) -> 'Genome':
        """
        Return an independent copy of this genome (same ID, genes, fitness and species).
        """
        copy_ = Genome(self.id, 0, 0, self._config, self.activation)
        copy_.num_inputs       = self.num_inputs
        copy_.num_outputs      = self.num_outputs
        copy_.node_genes       = {nid: node.copy() for nid, node in self.node_genes.items()}
        copy_.conn_genes       = {innov: conn.copy() for innov, conn in self.conn_genes.items()}
        copy_.fitness          = self.fitness
        copy_.adjusted_fitness = self.adjusted_fitness
        copy_.species_id       = self.species_id
        copy_.last_activations = dict(self.last_activations)
        return copy_

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_dict(self, include_activations: bool = False) -> dict:
        """
        Convert genome to dictionary representation.

        The dictionary only holds plain data (numbers, strings, lists, dicts)
        and can be passed between threads or processes. It is meant for
        in-memory exchange; it is not a stable on-disk format.

        Parameters:
            include_activations: Also include the node values from the latest evaluation

        Returns:
            Dictionary describing the genome, e.g.
            {
                'id': 7, 'activation': 'tanh', 'fitness': 1.5,
                'adjusted_fitness': 0.5, 'species_id': 2,
                'num_inputs': 2, 'num_outputs': 1,
                'nodes': [{'id': 0, 'type': 'input', 'bias': 0.0}, ...],
                'connections': [{'from': 0, 'to': 2, 'weight': 0.5,
                                 'enabled': True, 'innovation': 0}, ...]
            }
        """
        genome_dict = {
            'id'              : self.id,
            'activation'      : self.activation,
            'fitness'         : float(self.fitness),
            'adjusted_fitness': float(self.adjusted_fitness),
            'species_id'      : self.species_id,
            'num_inputs'      : self.num_inputs,
            'num_outputs'     : self.num_outputs,
            'nodes'           : [{'id': node.id, 'type': node.type.name.lower(), 'bias': float(node.bias)}
                                 for node in sorted(self.node_genes.values(), key=lambda n: n.id)],
            'connections'     : [{'from'      : conn.node_in,
                                  'to'        : conn.node_out,
                                  'weight'    : float(conn.weight),
                                  'enabled'   : conn.enabled,
                                  'innovation': conn.innovation}
                                 for _, conn in sorted(self.conn_genes.items())]
        }
        if include_activations:
            genome_dict['last_activations'] = {int(nid): float(value)
                                               for nid, value in self.last_activations.items()}
        return genome_dict

    @classmethod
    def from_dict(cls, genome_dict: dict, config: Config | None = None) -> 'Genome':
        """
        Create a Genome from a dictionary description (as produced by 'to_dict()').

        Parameters:
            genome_dict: Dictionary describing the genome
            config:      Stores configuration parameters (defaults are used if None)

        Returns:
            The new genome
        """
        nodes      = genome_dict['nodes']
        node_types = {node['id']: NodeType.from_name(node['type']) for node in nodes}
        num_inputs  = genome_dict.get('num_inputs',  sum(1 for t in node_types.values() if t == NodeType.INPUT))
        num_outputs = genome_dict.get('num_outputs', sum(1 for t in node_types.values() if t == NodeType.OUTPUT))

        genome = cls(genome_dict.get('id', 0), 0, 0, config, genome_dict.get('activation'))
        genome.num_inputs  = num_inputs
        genome.num_outputs = num_outputs

        for node in nodes:
            node_type = node_types[node['id']]
            genome.node_genes[node['id']] = NodeGene(node['id'], node_type,
                                                     bias=float(node.get('bias', 0.0)),
                                                     activation_name=genome.activation)

        for conn in genome_dict.get('connections', []):
            innovation = conn['innovation']
            genome.conn_genes[innovation] = ConnectionGene(conn['from'], conn['to'], float(conn['weight']),
                                                           innovation, genome._config,
                                                           enabled=conn.get('enabled', True))

        genome.fitness          = float(genome_dict.get('fitness', 0.0))
        genome.adjusted_fitness = float(genome_dict.get('adjusted_fitness', 0.0))
        genome.species_id       = genome_dict.get('species_id')
        genome.last_activations = {int(nid): float(value)
                                   for nid, value in genome_dict.get('last_activations', {}).items()}
        return genome

    def __str__(self):
        node_genes_str  = ''.join(str(node) for node in self.input_nodes)
        node_genes_str += ''.join(str(node) for node in self.hidden_nodes)
        node_genes_str += ''.join(str(node) for node in self.output_nodes)
        conn_genes_str  = ''.join(str(self.conn_genes[innov]) for innov in sorted(self.conn_genes))
        return f"Nodes: {node_genes_str}\nConns: {conn_genes_str}"

    def __repr__(self):
        return (f"Genome(id={self.id}, nodes={len(self.node_genes)}, "
                f"connections={len(self.conn_genes)}, fitness={self.fitness:.3f})")
