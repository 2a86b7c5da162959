"""Generate batches of conformers in parallel worker threads."""
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import numpy

from openff.distgeom.conformers._conformer import Conformer, ThreadState
from openff.distgeom.conformers._relaxation import RelaxationEngine
from openff.distgeom.conformers.exceptions import ConformerGenerationError

_logger = logging.getLogger(__name__)

WORKER_NICENESS = 10


def _lower_thread_priority():
    """Lowers the scheduling priority of the calling thread where the platform
    supports per-thread priorities."""

    if not hasattr(os, "setpriority") or not hasattr(threading, "get_native_id"):
        return

    try:
        os.setpriority(os.PRIO_PROCESS, threading.get_native_id(), WORKER_NICENESS)
    except OSError:
        _logger.debug("could not lower the priority of a conformer worker thread")


class _SlotCounter:
    """Hands out the slots of a single batch to the workers generating it."""

    def __init__(self, n_slots: int):
        self._n_slots = n_slots
        self._next_slot = 0
        self._lock = threading.Lock()

    def claim(self) -> Optional[int]:
        with self._lock:
            if self._next_slot >= self._n_slots:
                return None

            slot = self._next_slot
            self._next_slot += 1

            return slot


class ParallelConformerDriver:
    """Generates a batch of conformers using a pool of worker threads, each of which
    owns its own random number generator and scratch state.

    Workers repeatedly claim the next free conformer slot from a counter owned by
    the batch until all slots are claimed, so that the work is balanced even when
    some conformers take longer to relax than others.
    """

    def __init__(self, engine: RelaxationEngine, n_workers: Optional[int] = None):
        """

        Parameters
        ----------
        engine
            The engine to relax each conformer with.
        n_workers
            The maximum number of worker threads. By default the number of CPUs.
        """
        self._engine = engine
        self._n_workers = n_workers

    def _run_worker(
        self,
        slots: _SlotCounter,
        results: List[Optional[Conformer]],
        seeds: Optional[List[numpy.random.SeedSequence]],
    ):
        state: Optional[ThreadState] = None

        while True:
            slot = slots.claim()

            if slot is None:
                break

            if seeds is not None:
                state = self._engine.create_state(seeds[slot])
            elif state is None:
                state = self._engine.create_state()

            conformer = Conformer(self._engine.n_atoms)

            try:
                self._engine.generate(conformer, state)
            except Exception:
                _logger.exception(f"failed to generate conformer {slot}")
                continue

            results[slot] = conformer

    def generate(self, n_conformers: int, seed: int = 0) -> List[Conformer]:
        """Generates a batch of conformers.

        Parameters
        ----------
        n_conformers
            The number of conformers to generate.
        seed
            A batch wide seed. If non-zero each conformer slot is assigned its own
            random stream derived from this seed, so that the batch is
            reproducible regardless of which thread handles which slot. If zero,
            every worker is seeded from system entropy.

        Returns
        -------
            The generated conformers, in slot order.
        """

        if n_conformers <= 0:
            return []

        n_workers = min(self._n_workers or os.cpu_count() or 1, n_conformers)

        seeds = (
            None if not seed else numpy.random.SeedSequence(seed).spawn(n_conformers)
        )
        results: List[Optional[Conformer]] = [None] * n_conformers
        slots = _SlotCounter(n_conformers)

        _logger.info(
            f"generating {n_conformers} conformers of a {self._engine.n_atoms} atom "
            f"molecule using {n_workers} threads"
        )

        with ThreadPoolExecutor(
            max_workers=n_workers, initializer=_lower_thread_priority
        ) as executor:
            futures = [
                executor.submit(self._run_worker, slots, results, seeds)
                for _ in range(n_workers)
            ]

            for future in futures:
                future.result()

        missing_slots = [slot for slot, result in enumerate(results) if result is None]

        if len(missing_slots) > 0:
            raise ConformerGenerationError(
                f"conformers {', '.join(map(str, missing_slots))} could not be "
                f"generated"
            )

        _logger.info(f"generated {n_conformers} conformers")

        return results
