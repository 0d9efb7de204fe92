"""
NEAT Worker Package

Background evolution driven by messages.

Exported:
    EvolutionWorker: Message-driven wrapper around NEATEngine
    RequestType:     Types of requests a host can send
    EventType:       Types of events the worker emits
    build_snapshot:  Plain-data view of an engine
"""

from neatlab.worker.messages         import RequestType, EventType, STATUS_RUNNING, STATUS_PAUSED, request
from neatlab.worker.snapshot         import build_snapshot, VISUAL_GENOME_LIMIT
from neatlab.worker.evolution_worker import EvolutionWorker, default_environment_factory

__all__ = ['EvolutionWorker',
           'RequestType',
           'EventType',
           'STATUS_RUNNING',
           'STATUS_PAUSED',
           'request',
           'build_snapshot',
           'VISUAL_GENOME_LIMIT',
           'default_environment_factory']
