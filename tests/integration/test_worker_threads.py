"""
Integration tests for EvolutionWorker with its dispatcher and generation
loop running in background threads.
"""

import queue
import threading
import time

import pytest

from neatlab.environments import BaseEnvironment, XorEnvironment
from neatlab.worker import EvolutionWorker, STATUS_PAUSED, STATUS_RUNNING, request

TIMEOUT = 10.0

SETTINGS = {'population_size': 20, 'seed': 3, 'num_jobs': 1}


class GatedEnvironment(BaseEnvironment):
    """Blocks the first evaluation until 'gate' is set."""

    name = "Gated"

    def __init__(self):
        super().__init__()
        self.input_count  = 2
        self.output_count = 1
        self.started      = threading.Event()
        self.gate         = threading.Event()

    def evaluate(self, genome) -> float:
        self.started.set()
        self.gate.wait(TIMEOUT)
        return 1.0


class FailingEnvironment(BaseEnvironment):

    name = "Failing"

    def __init__(self):
        super().__init__()
        self.input_count  = 2
        self.output_count = 1

    def evaluate(self, genome) -> float:
        raise RuntimeError("simulation crashed")


def wait_for(worker, predicate, collected=None):
    """Read events until one satisfies 'predicate'; returns it."""
    deadline = time.monotonic() + TIMEOUT
    while time.monotonic() < deadline:
        try:
            item = worker.get_event(timeout=0.1)
        except queue.Empty:
            continue
        if collected is not None:
            collected.append(item)
        if predicate(item):
            return item
    pytest.fail("timed out waiting for an event")


def wait_until(condition):
    deadline = time.monotonic() + TIMEOUT
    while time.monotonic() < deadline:
        if condition():
            return
        time.sleep(0.01)
    pytest.fail("timed out waiting for a condition")


def of_type(event_type):
    return lambda item: item['type'] == event_type


# ============================================================================
# Run loop
# ============================================================================

class TestRunLoop:

    def test_start_and_stop(self):
        with EvolutionWorker(lambda settings: XorEnvironment(), loop_delay=0.0) as worker:
            worker.post(request("INIT", SETTINGS))
            wait_for(worker, of_type("INITED"))

            worker.post(request("START"))
            status = wait_for(worker, of_type("STATUS"))
            assert status['message'] == STATUS_RUNNING
            assert status['snapshot']['running'] is True

            # Several generations run without further requests
            wait_for(worker, lambda item: item['type'] == "GENERATION_COMPLETE"
                                          and item['snapshot']['generation'] >= 3)

            worker.post(request("STOP"))
            status = wait_for(worker, lambda item: item['type'] == "STATUS"
                                                   and item['message'] == STATUS_PAUSED)
            assert status['snapshot']['running'] is False
            wait_until(lambda: worker._loop_thread is None)

            generation = worker.engine.generation
            time.sleep(0.1)
            assert worker.engine.generation == generation

    def test_stop_during_generation_lets_it_finish(self):
        environment = GatedEnvironment()
        with EvolutionWorker(lambda settings: environment, loop_delay=0.0) as worker:
            worker.post(request("INIT", SETTINGS))
            wait_for(worker, of_type("INITED"))

            events = []
            worker.post(request("START"))
            assert environment.started.wait(TIMEOUT)

            worker.post(request("STOP"))
            wait_until(lambda: not worker.running)
            environment.gate.set()

            wait_for(worker, lambda item: item['type'] == "STATUS" and item['message'] == STATUS_PAUSED,
                     collected=events)
            wait_until(lambda: worker._loop_thread is None)
            time.sleep(0.1)
            events.extend(worker.drain_events())

            completed = [item for item in events if item['type'] == "GENERATION_COMPLETE"]
            assert len(completed) == 1
            assert completed[0]['snapshot']['generation'] == 1
            assert worker.engine.generation == 1

    def test_start_twice_runs_one_loop(self):
        with EvolutionWorker(lambda settings: XorEnvironment(), loop_delay=0.01) as worker:
            worker.post(request("INIT", SETTINGS))
            wait_for(worker, of_type("INITED"))

            worker.post(request("START"))
            worker.post(request("START"))
            wait_for(worker, lambda item: item['type'] == "GENERATION_COMPLETE"
                                          and item['snapshot']['generation'] >= 2)
            loop_threads = [t for t in threading.enumerate() if t.name == "neatlab-evolution"]
            assert len(loop_threads) == 1

            worker.post(request("STOP"))
            wait_for(worker, lambda item: item['type'] == "STATUS" and item['message'] == STATUS_PAUSED)

    def test_step_while_running_is_ignored(self):
        environment = GatedEnvironment()
        with EvolutionWorker(lambda settings: environment, loop_delay=0.0) as worker:
            worker.post(request("INIT", SETTINGS))
            wait_for(worker, of_type("INITED"))

            worker.post(request("START"))
            assert environment.started.wait(TIMEOUT)
            worker.post(request("STEP"))
            worker.post(request("STOP"))
            wait_until(lambda: not worker.running)
            environment.gate.set()

            events = []
            wait_for(worker, lambda item: item['type'] == "STATUS" and item['message'] == STATUS_PAUSED,
                     collected=events)
            wait_until(lambda: worker._loop_thread is None)
            assert worker.engine.generation == 1

    def test_init_while_running_stops_the_loop(self):
        with EvolutionWorker(lambda settings: XorEnvironment(), loop_delay=0.0) as worker:
            worker.post(request("INIT", SETTINGS))
            wait_for(worker, of_type("INITED"))
            worker.post(request("START"))
            wait_for(worker, of_type("GENERATION_COMPLETE"))

            worker.post(request("INIT", {'population_size': 25}))
            inited = wait_for(worker, of_type("INITED"))
            assert inited['snapshot']['running'] is False
            assert inited['snapshot']['generation'] == 0
            assert worker._loop_thread is None

    def test_loop_failure_is_reported(self):
        with EvolutionWorker(lambda settings: FailingEnvironment(), loop_delay=0.0) as worker:
            worker.post(request("INIT", SETTINGS))
            wait_for(worker, of_type("INITED"))

            worker.post(request("START"))
            failure = wait_for(worker, of_type("ERROR"))
            assert failure['message'] == "simulation crashed"
            wait_until(lambda: worker._loop_thread is None)
            assert not worker.running

            # The worker still answers requests
            worker.post(request("STATE"))
            state = wait_for(worker, of_type("STATE"))
            assert state['snapshot']['running'] is False


# ============================================================================
# Message boundary
# ============================================================================

class TestMessageBoundary:

    def test_posted_messages_are_copied(self):
        with EvolutionWorker(lambda settings: XorEnvironment()) as worker:
            payload = {'population_size': 20}
            message = request("INIT", payload)
            worker.post(message)
            payload['population_size'] = 200

            inited = wait_for(worker, of_type("INITED"))
            assert inited['snapshot']['config']['population_size'] == 20

    def test_snapshots_are_detached(self):
        with EvolutionWorker(lambda settings: XorEnvironment()) as worker:
            worker.post(request("INIT", SETTINGS))
            inited = wait_for(worker, of_type("INITED"))
            inited['snapshot']['population_genomes'][0]['nodes'].clear()

            genome_id = inited['snapshot']['population_genomes'][0]['id']
            worker.post(request("REQUEST_GENOME", genome_id))
            details = wait_for(worker, of_type("GENOME_DETAILS"))
            assert details['genome']['nodes']

    def test_shutdown_stops_threads(self):
        worker = EvolutionWorker(lambda settings: XorEnvironment(), loop_delay=0.0)
        worker.start()
        worker.post(request("INIT", SETTINGS))
        wait_for(worker, of_type("INITED"))
        worker.post(request("START"))
        wait_for(worker, of_type("GENERATION_COMPLETE"))

        dispatcher = worker._dispatcher
        worker.shutdown(timeout=TIMEOUT)
        assert not worker.running
        assert worker._loop_thread is None
        assert not dispatcher.is_alive()
