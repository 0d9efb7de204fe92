"""
Evolution Worker Module

Runs one engine and its environment behind a message interface, so a host
(a UI, a server, a notebook) can drive evolution without sharing any state
with it. The host posts requests into 'inbox' and reads events from 'outbox';
everything crossing the boundary is plain data.

Two threads do the work: a dispatcher that handles requests one at a time,
and a generation loop that runs while the worker is in the running state.
A lock around the engine makes every generation atomic with respect to
request handling: a request arriving mid-generation waits for it to end.

Classes:
    EvolutionWorker: Message-driven wrapper around NEATEngine
"""

import copy
import logging
import queue
import threading
import time
from typing import Callable

from neatlab.environments import BaseEnvironment, make_environment
from neatlab.run.config   import Config
from neatlab.run.engine   import NEATEngine
from neatlab.worker.messages import (EventType, RequestType, STATUS_PAUSED, STATUS_RUNNING,
                                     error, event, normalize_type)
from neatlab.worker.snapshot import build_snapshot, serialize_genome_full

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "flappy_bird"

# Keys of an INIT/RESET payload that select the environment rather than configure the engine
ENVIRONMENT_KEYS = ('environment', 'environment_options')

_SHUTDOWN = object()

def default_environment_factory(settings: dict) -> BaseEnvironment:
    """
    Build the environment named by settings['environment'] (Flappy Bird by
    default), passing settings['environment_options'] to its constructor.
    """
    name    = settings.get('environment') or DEFAULT_ENVIRONMENT
    options = dict(settings.get('environment_options') or {})
    return make_environment(name, **options)

class EvolutionWorker:
    """
    Message-driven evolution co-process.

    Requests are dictionaries {'type': ..., 'payload': ...}; see
    neatlab.worker.messages for the request and event types.

    Public Attributes:
        inbox:  Queue of incoming requests
        outbox: Queue of outgoing events

    Public Methods:
        start():                 Start the dispatcher thread
        shutdown(timeout):       Stop evolution and the dispatcher thread
        post(message):           Queue a request (deep-copied)
        handle_message(message): Handle a request synchronously
        get_event(timeout):      Take the next event from the outbox
        drain_events():          Take all pending events from the outbox
    """

    def __init__(self,
                 environment_factory: Callable[[dict], BaseEnvironment] | None = None,
                 loop_delay         : float = 0.02):
        """
        Parameters:
            environment_factory: Builds the environment from the merged INIT/RESET settings
            loop_delay:          Pause in seconds between generations of the run loop
        """
        self.inbox : queue.Queue = queue.Queue()
        self.outbox: queue.Queue = queue.Queue()

        self._environment_factory = environment_factory or default_environment_factory
        self._loop_delay          = max(0.0, float(loop_delay))

        self._settings   : dict              = {}
        self._engine     : NEATEngine | None = None
        self._engine_lock                    = threading.Lock()
        self._running                        = threading.Event()
        self._loop_guard                     = threading.Lock()
        self._loop_thread: threading.Thread | None = None
        self._dispatcher : threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def engine(self) -> NEATEngine | None:
        return self._engine

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._dispatcher is not None and self._dispatcher.is_alive():
            return
        self._dispatcher = threading.Thread(target=self._dispatch, name="neatlab-dispatcher", daemon=True)
        self._dispatcher.start()
        logger.info("evolution worker started")

    def shutdown(self, timeout: float | None = None) -> None:
        self._stop_loop(wait=True)
        if self._dispatcher is not None:
            self.inbox.put(_SHUTDOWN)
            self._dispatcher.join(timeout)
            self._dispatcher = None
        logger.info("evolution worker stopped")

    def __enter__(self) -> 'EvolutionWorker':
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.shutdown()

    def post(self, message: dict) -> None:
        """
        Queue a request for the dispatcher thread. The message is deep-copied,
        so the caller may keep modifying its own object.
        """
        self.inbox.put(copy.deepcopy(message))

    def get_event(self, timeout: float | None = None) -> dict:
        """
        Take the next event. Raises queue.Empty if none arrives within 'timeout'.
        """
        return self.outbox.get(timeout=timeout)

    def drain_events(self) -> list[dict]:
        events = []
        while True:
            try:
                events.append(self.outbox.get_nowait())
            except queue.Empty:
                return events

    def _dispatch(self) -> None:
        while True:
            message = self.inbox.get()
            if message is _SHUTDOWN:
                break
            self.handle_message(message)

    def _emit(self, outgoing: dict) -> None:
        self.outbox.put(outgoing)

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle_message(self, message: dict) -> None:
        """
        Handle one request and emit its reply. Failures are reported as
        ERROR events; they never propagate to the caller.
        """
        try:
            if not isinstance(message, dict):
                raise ValueError(f"message must be a dictionary, got {type(message).__name__}")

            message_type = normalize_type(message.get('type'))
            payload      = message.get('payload')

            if message_type == RequestType.INIT.value:
                self._stop_loop(wait=True)
                self._create_engine(payload)
                self._reply(EventType.INITED)
                return

            if self._engine is None:
                self._emit(error("worker is not initialized"))
                return

            if message_type == RequestType.RESET.value:
                self._stop_loop(wait=True)
                self._create_engine(payload)
                self._reply(EventType.RESET)

            elif message_type == RequestType.START.value:
                self._running.set()
                self._reply(EventType.STATUS, message=STATUS_RUNNING)
                self._ensure_run_loop()

            elif message_type == RequestType.STOP.value:
                self._running.clear()
                self._reply(EventType.STATUS, message=STATUS_PAUSED)

            elif message_type == RequestType.STEP.value:
                if self._running.is_set():
                    logger.debug("STEP ignored while running")
                    return
                self._evolve_one_generation()

            elif message_type == RequestType.UPDATE_CONFIG.value:
                partial = payload if isinstance(payload, dict) else {}
                with self._engine_lock:
                    self._settings.update(partial)
                    self._engine.update_config(partial)
                self._reply(EventType.CONFIG_UPDATED)

            elif message_type == RequestType.REQUEST_GENOME.value:
                genome_id = payload.get('id') if isinstance(payload, dict) else payload
                with self._engine_lock:
                    genome = self._engine.get_genome_by_id(genome_id)
                    genome_dict = serialize_genome_full(genome, include_activations=True) if genome else None
                self._emit(event(EventType.GENOME_DETAILS, genome=genome_dict))

            elif message_type == RequestType.STATE.value:
                self._reply(EventType.STATE)

            elif message_type == RequestType.UPDATE_ENV_SIZE.value:
                size = payload if isinstance(payload, dict) else {}
                with self._engine_lock:
                    self._engine.environment.set_world_size(size.get('width'), size.get('height'))
                    self._remember_environment()
                self._reply(EventType.ENV_SIZE_UPDATED)

            elif message_type == RequestType.UPDATE_ENVIRONMENT.value:
                self._update_environment(payload if isinstance(payload, dict) else {})
                self._reply(EventType.ENV_UPDATED)

            else:
                self._emit(error(f"unknown message type '{message_type}'"))

        except Exception as e:
            logger.exception("failed to handle message")
            self._emit(error(str(e)))

    def _reply(self, event_type: EventType, **fields) -> None:
        with self._engine_lock:
            snapshot = build_snapshot(self._engine, self._running.is_set())
        self._emit(event(event_type, snapshot=snapshot, **fields))

    def _create_engine(self, payload) -> None:
        """
        Build a new environment and engine from the settings accumulated so
        far, updated with 'payload'. The settings are only kept if the build
        succeeds.
        """
        settings = dict(self._settings)
        if isinstance(payload, dict):
            # Options only apply to the environment they were recorded for
            if payload.get('environment', settings.get('environment')) != settings.get('environment'):
                settings.pop('environment_options', None)
            settings.update(payload)

        engine_settings = {key: value for key, value in settings.items() if key not in ENVIRONMENT_KEYS}
        environment     = self._environment_factory(dict(settings))
        engine          = NEATEngine(environment, Config(**engine_settings))

        with self._engine_lock:
            self._engine   = engine
            self._settings = settings
        logger.info(f"worker engine ready: {environment.name}")

    def _remember_environment(self) -> None:
        """
        Record the live environment's state in the settings, so that a
        later RESET rebuilds the environment as it is now.
        """
        options = dict(self._settings.get('environment_options') or {})
        options.update(self._engine.environment.get_options())
        self._settings['environment_options'] = options

    def _update_environment(self, context: dict) -> None:
        with self._engine_lock:
            engine      = self._engine
            environment = engine.environment
            shape       = (environment.input_count, environment.output_count)

            environment.update_context(context)
            self._remember_environment()

            # Networks no longer fit the environment: start over with a new engine
            if (environment.input_count, environment.output_count) != shape:
                logger.info(f"environment now has {environment.input_count} inputs and "
                            f"{environment.output_count} outputs, rebuilding the engine")
                self._engine = NEATEngine(environment, engine.config)

    # ------------------------------------------------------------------
    # Generation loop
    # ------------------------------------------------------------------

    def _evolve_one_generation(self) -> None:
        with self._engine_lock:
            engine = self._engine

            def on_progress(progress: float) -> None:
                self._emit(event(EventType.PROGRESS, progress=progress, generation=engine.generation))

            engine.evolve_one_generation(on_progress)
            snapshot = build_snapshot(engine, self._running.is_set())
        self._emit(event(EventType.GENERATION_COMPLETE, snapshot=snapshot))

    def _ensure_run_loop(self) -> None:
        with self._loop_guard:
            if self._loop_thread is not None:
                return
            self._loop_thread = threading.Thread(target=self._run_loop, name="neatlab-evolution", daemon=True)
            self._loop_thread.start()

    def _run_loop(self) -> None:
        try:
            while True:
                # Deciding to exit and clearing the thread slot happen together,
                # so a concurrent START either keeps this loop alive or starts a new one
                with self._loop_guard:
                    if not self._running.is_set():
                        self._loop_thread = None
                        return

                self._evolve_one_generation()
                if self._running.is_set() and self._loop_delay > 0:
                    time.sleep(self._loop_delay)

        except Exception as e:
            logger.exception("evolution loop failed")
            with self._loop_guard:
                self._running.clear()
                self._loop_thread = None
            self._emit(error(str(e)))

    def _stop_loop(self, wait: bool) -> None:
        """
        Ask the generation loop to stop after the generation in progress,
        and optionally wait for it.
        """
        self._running.clear()
        with self._loop_guard:
            thread = self._loop_thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join()
