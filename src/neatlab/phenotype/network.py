"""
NEAT Network Module

This module implements the phenotype of a NEAT genome: the neural network
that the genome encodes, evaluated node-by-node in topological order.

Networks without cycles are evaluated with a single feed-forward pass.
When recurrent connections are allowed the enabled graph may contain cycles;
nodes that cannot be sorted are then appended after the sorted ones, and any
connection whose source hasn't been computed yet during the current pass
reads the source's value from the previous pass (one-step delayed feedback).

Classes:
    Network: Evaluates the network encoded by a genome
"""

import heapq
from collections import defaultdict
from typing      import TYPE_CHECKING
import graphviz  # type: ignore

from neatlab.genotype.node_gene import NodeType
if TYPE_CHECKING:
    from neatlab.genotype import Genome
    from neatlab.genotype.connection_gene import ConnectionGene

class Network:
    """
    The neural network encoded by a genome.

    The network keeps references to the genome's connection genes, so weight
    changes are picked up without rebuilding it. Structural changes (new nodes,
    new or disabled connections) and activation changes require a new Network;
    the genome takes care of that.

    Public Properties:
        sorted_nodes: Node IDs in evaluation order
        is_recurrent: Whether the enabled connections contain a cycle

    Public Methods:
        forward_pass(inputs, previous): Compute the value of every node
        visualize(view):                Draw the network using Graphviz
    """

    def __init__(self, genome: 'Genome'):
        """
        Parameters:
            genome: The Genome encoding the network structure
        """
        self._genome     = genome
        self._input_ids  = [gene.id for gene in genome.input_nodes]
        self._output_ids = [gene.id for gene in genome.output_nodes]

        # Incoming enabled connections of each node
        self._incoming: dict[int, list['ConnectionGene']] = defaultdict(list)
        for conn in genome.conn_genes.values():
            if conn.node_in not in genome.node_genes or conn.node_out not in genome.node_genes:
                raise RuntimeError(f"connection {conn.innovation} references a node "
                                   f"missing from genome {genome.id}")
            if conn.enabled:
                self._incoming[conn.node_out].append(conn)

        self._sorted_nodes, self.is_recurrent = self._topological_sort(genome)

    @property
    def sorted_nodes(self) -> list[int]:
        return list(self._sorted_nodes)

    @staticmethod
    def _topological_sort(genome: 'Genome') -> tuple[list[int], bool]:
        """
        Perform topological sort using Kahn's algorithm.

        Among the nodes that are ready to be processed, inputs come first,
        then hidden nodes, then outputs; ties are broken by node ID.
        If the enabled connections contain a cycle, the nodes that could
        not be sorted are appended in (type, ID) order.

        Parameters:
            genome: The Genome containing node and connection genes

        Returns:
            2-tuple: (list of node IDs in evaluation order, whether a cycle was found)
        """
        def sort_key(node_id):
            return genome.node_genes[node_id].type.rank, node_id

        adjacency = defaultdict(list)
        in_degree = {node_id: 0 for node_id in genome.node_genes}

        # Build graph from enabled connections only
        for conn in genome.conn_genes.values():
            if conn.enabled:
                adjacency[conn.node_in].append(conn.node_out)
                in_degree[conn.node_out] += 1

        # Start with nodes that have no incoming edges
        heap = [sort_key(node_id) for node_id, degree in in_degree.items() if degree == 0]
        heapq.heapify(heap)
        result = []

        while heap:
            _, node_id = heapq.heappop(heap)
            result.append(node_id)

            # Process all outgoing edges
            for neighbor in adjacency[node_id]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    heapq.heappush(heap, sort_key(neighbor))

        has_cycle = len(result) != len(genome.node_genes)
        if has_cycle:
            placed = set(result)
            result.extend(sorted((n for n in genome.node_genes if n not in placed), key=sort_key))

        return result, has_cycle

    def forward_pass(self,
                     inputs  : list[float],
                     previous: dict[int, float] | None = None) -> tuple[list[float], dict[int, float]]:
        """
        Perform a complete pass through the network.

        Missing inputs read as 0.0 and extra inputs are ignored.

        Parameters:
            inputs:   Values for the input nodes, in input ID order
            previous: Node values from the previous pass; used for the sources
                      of recurrent connections (nodes not computed yet)

        Returns:
            2-tuple: (output values in output ID order, value of every node)
        """
        previous = previous or {}
        values   = {}

        for index, node_id in enumerate(self._input_ids):
            values[node_id] = float(inputs[index]) if index < len(inputs) else 0.0

        node_genes = self._genome.node_genes
        for node_id in self._sorted_nodes:
            node = node_genes[node_id]
            if node.type == NodeType.INPUT:
                continue

            total = node.bias
            for conn in self._incoming[node_id]:
                source = values.get(conn.node_in)
                if source is None:
                    source = previous.get(conn.node_in, 0.0)
                total += conn.weight * source
            values[node_id] = float(node.activation(total))

        outputs = [values[node_id] for node_id in self._output_ids]
        return outputs, values

    def visualize(self, view: bool = True) -> graphviz.Digraph:
        """
        Visualize the network using Graphviz.

        Parameters:
            view: If True, automatically open the visualization after rendering

        Returns:
            graphviz.Digraph object representing the network
        """
        dot = graphviz.Digraph()
        dot.attr(rankdir='LR')  # Left to right layout
        dot.attr('graph', labelloc='t', label=f"genome {self._genome.id}")

        base_attrs = {'color': 'black', 'style': 'filled', 'shape': 'circle', 'penwidth': '0.5',
                      'fontsize': '5', 'width': '0.5', 'height': '0.5', 'fixedsize': 'true'}
        fill_color = {NodeType.INPUT: 'lightgrey', NodeType.HIDDEN: 'lightblue', NodeType.OUTPUT: 'white'}
        clusters   = [('cluster_input',  'source', 'Inputs',  NodeType.INPUT),
                      ('cluster_hidden', 'same',   'Hidden',  NodeType.HIDDEN),
                      ('cluster_output', 'sink',   'Outputs', NodeType.OUTPUT)]

        # Create subgraphs for better layout
        for name, rank, label, node_type in clusters:
            node_ids = sorted(n for n, gene in self._genome.node_genes.items() if gene.type == node_type)
            if not node_ids:
                continue
            with dot.subgraph(name=name) as cluster:
                cluster.attr(rank=rank, label=label, style='invisible')
                for node_id in node_ids:
                    node_gene = self._genome.node_genes[node_id]
                    attrs = dict(base_attrs, fillcolor=fill_color[node_type])
                    attrs['label'] = f"id={node_id}\\nbias={node_gene.bias:.2f}"
                    cluster.node(str(node_id), **attrs)

        # Add edges with weights (both enabled and disabled)
        for conn in self._genome.conn_genes.values():
            edge_attrs = {
                'label'     : f"i={conn.innovation},w={conn.weight:.2f}",
                'fontsize'  : '5',
                'penwidth'  : '0.5',
                'arrowsize' : '0.5',
                'labelfloat': 'false',
                'color'     : 'black' if conn.enabled else 'lightgray'
            }
            dot.edge(str(conn.node_in), str(conn.node_out), **edge_attrs)

        if view:
            dot.view(cleanup=True)

        return dot
