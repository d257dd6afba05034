# src/issim_core/simulation/executor.py
"""
Defines the `FrequencySweepExecutor`, which evaluates every frequency point of one
illumination row through the `HarmonicExtractionGate`.

Frequency points are independent: each starts from the same prepared steady-state
solution and owns exactly one result cell. They can therefore be mapped over a
worker pool. The strategy (serial loop, thread pool or process pool) is fixed
by `ExecutionConfig` when the sweep starts. Only the column index of each task
matters; completion order does not.
"""
import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import Optional, Sequence

from ..data_structures import DeviceSolution
from .config import ExecutionConfig, ExecutionStrategy
from .exceptions import FrequencyPointFailure
from .gate import GateOutcome, HarmonicExtractionGate
from .results import ResultMatrices

logger = logging.getLogger(__name__)


def _evaluate_cell(
    gate: HarmonicExtractionGate,
    solution: DeviceSolution,
    frequency_hz: float,
    illumination_index: int,
    light_intensity: float,
    dc_voltage: float,
) -> GateOutcome:
    """Worker entry point; module-level so that process pools can pickle it."""
    return gate.evaluate(
        solution,
        frequency_hz,
        illumination_index=illumination_index,
        light_intensity=light_intensity,
        dc_voltage=dc_voltage,
    )


class FrequencySweepExecutor:
    """
    Maps the extraction gate over a frequency grid for one illumination row at a
    time. Use it as a context manager so that a worker pool, if any, is created
    once per sweep and shut down afterwards.
    """
    def __init__(self, gate: HarmonicExtractionGate, execution: Optional[ExecutionConfig] = None):
        self.gate = gate
        self.execution = execution if execution is not None else ExecutionConfig()
        self._pool: Optional[Executor] = None

    def __enter__(self) -> "FrequencySweepExecutor":
        strategy = self.execution.strategy
        if strategy is ExecutionStrategy.THREADS:
            self._pool = ThreadPoolExecutor(max_workers=self.execution.max_workers, thread_name_prefix="issim")
        elif strategy is ExecutionStrategy.PROCESSES:
            try:
                self._pool = ProcessPoolExecutor(max_workers=self.execution.max_workers)
            except (OSError, NotImplementedError) as e:
                # No multiprocessing support on this platform.
                logger.warning(f"Process pool unavailable ({e}); evaluating frequency points serially.")
        logger.debug(f"FrequencySweepExecutor started with strategy '{strategy}'.")
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._pool is not None:
            # Do not wait for queued cells when the sweep is being aborted.
            self._pool.shutdown(wait=True, cancel_futures=exc_type is not None)
            self._pool = None
        return False

    def run_row(
        self,
        row_index: int,
        solution: DeviceSolution,
        frequencies_hz: Sequence[float],
        light_intensity: float,
        dc_voltage: float,
        matrices: ResultMatrices,
    ):
        """
        Evaluates every frequency of row `row_index` and writes each outcome into
        `matrices[row_index, column]`.

        Raises:
            FrequencyPointFailure: If a collaborator raises for any cell. The whole
                                   sweep is aborted; remaining cells are cancelled.
        """
        start = time.perf_counter()
        if self._pool is None:
            if self.execution.strategy is not ExecutionStrategy.SERIAL:
                logger.debug(f"No worker pool for strategy '{self.execution.strategy}'; running serially.")
            for column, frequency_hz in enumerate(frequencies_hz):
                try:
                    outcome = _evaluate_cell(self.gate, solution, float(frequency_hz), row_index, light_intensity, dc_voltage)
                except Exception as e:
                    raise FrequencyPointFailure(row_index, light_intensity, float(frequency_hz), e) from e
                matrices.write(row_index, column, outcome)
                logger.debug(f"[row {row_index}] {frequency_hz:.4e} Hz done ({column + 1}/{len(frequencies_hz)}).")
        else:
            future_to_column = {
                self._pool.submit(
                    _evaluate_cell, self.gate, solution, float(frequency_hz), row_index, light_intensity, dc_voltage
                ): column
                for column, frequency_hz in enumerate(frequencies_hz)
            }
            n_done = 0
            for future in as_completed(future_to_column):
                column = future_to_column[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    for pending in future_to_column:
                        pending.cancel()
                    raise FrequencyPointFailure(row_index, light_intensity, float(frequencies_hz[column]), e) from e
                matrices.write(row_index, column, outcome)
                n_done += 1
                logger.debug(f"[row {row_index}] {frequencies_hz[column]:.4e} Hz done ({n_done}/{len(future_to_column)}).")

        logger.info(f"Row {row_index} ({len(frequencies_hz)} frequencies) completed in {time.perf_counter() - start:.2f} s.")
