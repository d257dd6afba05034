# src/issim_core/simulation/gate.py
"""
Defines the `HarmonicExtractionGate`, which turns one (illumination, frequency)
cell into a validated set of harmonic triples.

The gate runs one simulate-and-extract attempt and then walks a fixed escalation
cascade. Each stage is guarded by a test on the total-current phase and, when the
guard fires, either re-simulates at a tighter tolerance (warm-started from the
oscillating solution) or re-analyses the existing trace with the opposite
extraction method:

    INITIAL -> TIGHTEN_TOLERANCE -> SWAP_METHOD -> TIGHTEN_TOLERANCE_AGAIN -> DONE

The cascade is an acyclic graph visited once in topological order, so a cell costs
at most three extra passes. The gate never raises for an implausible phase; it
returns whatever triples are current once the cascade is exhausted.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import networkx as nx

from ..collaborators import DeviceSimulator, ExtractionMethod, HarmonicAnalyzer
from ..constants import (
    MAX_PLAUSIBLE_PHASE_RAD,
    PHASE_BOUNDARY_MARGIN_RAD,
    TOLERANCE_ESCALATION_FACTOR,
)
from ..data_structures import ChannelTriples, DeviceSolution

logger = logging.getLogger(__name__)


class EscalationStage(Enum):
    INITIAL = "initial"
    TIGHTEN_TOLERANCE = "tighten_tolerance"
    SWAP_METHOD = "swap_method"
    TIGHTEN_TOLERANCE_AGAIN = "tighten_tolerance_again"
    DONE = "done"

    def __str__(self):
        return self.value


# --- Stage guards (phase of the total current, radians) ---

def is_near_boundary(phase: float) -> bool:
    """Phase within the margin of 0 (or below it) or of pi/2 (or above it)."""
    return phase < PHASE_BOUNDARY_MARGIN_RAD or phase > MAX_PLAUSIBLE_PHASE_RAD - PHASE_BOUNDARY_MARGIN_RAD

def is_out_of_range(phase: float) -> bool:
    return phase < 0 or phase > MAX_PLAUSIBLE_PHASE_RAD

def is_still_out_of_range(phase: float) -> bool:
    return phase < 0 or abs(phase) > MAX_PLAUSIBLE_PHASE_RAD


def build_escalation_cascade() -> nx.DiGraph:
    """
    Builds the escalation cascade as a path graph. Node attributes:

    - guard: predicate on the current total-current phase; None means unconditional.
    - resimulate: run the simulator again from the current oscillating solution.
    - swap_method: analyse with the opposite of the configured extraction method.
    - tolerance_factor: multiplier applied to the simulator tolerance.
    - reason: human-readable description used in the diagnostic log line.
    """
    graph = nx.DiGraph(name="harmonic_extraction_cascade")
    graph.add_node(
        EscalationStage.INITIAL, guard=None, resimulate=True, swap_method=False,
        tolerance_factor=1.0, reason="initial extraction",
    )
    graph.add_node(
        EscalationStage.TIGHTEN_TOLERANCE, guard=is_near_boundary, resimulate=True, swap_method=False,
        tolerance_factor=1.0 / TOLERANCE_ESCALATION_FACTOR,
        reason="phase is marginal, increasing solver accuracy and calculating again",
    )
    graph.add_node(
        EscalationStage.SWAP_METHOD, guard=is_out_of_range, resimulate=False, swap_method=True,
        tolerance_factor=1.0,
        reason="phase is implausible, confirming using the alternative extraction method",
    )
    graph.add_node(
        EscalationStage.TIGHTEN_TOLERANCE_AGAIN, guard=is_still_out_of_range, resimulate=True, swap_method=False,
        tolerance_factor=1.0 / TOLERANCE_ESCALATION_FACTOR,
        reason="phase is still implausible, increasing solver accuracy and calculating again",
    )
    graph.add_node(
        EscalationStage.DONE, guard=None, resimulate=False, swap_method=False,
        tolerance_factor=1.0, reason="done",
    )
    nx.add_path(graph, list(EscalationStage))
    return graph


ESCALATION_CASCADE: nx.DiGraph = build_escalation_cascade()


@dataclass(frozen=True)
class EscalationRecord:
    """Diagnostic record emitted every time an escalation stage fires."""
    illumination_index: int
    light_intensity: float
    dc_voltage: float
    frequency_hz: float
    phase_deg: float
    stage: EscalationStage
    method: ExtractionMethod
    rel_tol: float

    def describe(self) -> str:
        return (
            f"Int: {self.light_intensity:g}; Vdc: {self.dc_voltage:.4g} V; Freq: {self.frequency_hz:.4g} Hz; "
            f"Phase is {self.phase_deg:.4g} degrees; stage '{self.stage}' using {self.method} "
            f"(RelTol {self.rel_tol:.1e})"
        )


@dataclass(frozen=True)
class GateOutcome:
    """Validated result of one sweep cell."""
    triples: ChannelTriples
    tmax: float
    escalations: Tuple[EscalationRecord, ...]
    simulation_count: int
    analysis_count: int
    final_rel_tol: float

    @property
    def phase(self) -> float:
        return self.triples.total.phase


class HarmonicExtractionGate:
    """
    Runs the simulate / extract / escalate sequence for single sweep cells.

    The gate holds only immutable configuration, so one instance can serve all
    cells of a sweep concurrently (and can be pickled to worker processes when its
    collaborators can).
    """
    def __init__(
        self,
        simulator: DeviceSimulator,
        analyzer: HarmonicAnalyzer,
        *,
        amplitude_v: float,
        periods: int,
        tpoints_per_period: int,
        rel_tol: float,
        method: ExtractionMethod = ExtractionMethod.DEMODULATION,
        cascade: Optional[nx.DiGraph] = None,
    ):
        self.simulator = simulator
        self.analyzer = analyzer
        self.amplitude_v = amplitude_v
        self.periods = periods
        self.tpoints_per_period = tpoints_per_period
        self.rel_tol = rel_tol
        self.method = method
        self.cascade = cascade if cascade is not None else ESCALATION_CASCADE
        if not nx.is_directed_acyclic_graph(self.cascade):
            raise ValueError("The escalation cascade must be acyclic.")

    def evaluate(
        self,
        solution: DeviceSolution,
        frequency_hz: float,
        *,
        illumination_index: int = 0,
        light_intensity: float = 0.0,
        dc_voltage: float = 0.0,
    ) -> GateOutcome:
        """
        Evaluates one cell starting from the prepared steady-state `solution`.
        Exceptions raised by the collaborators propagate unchanged.
        """
        rel_tol = self.rel_tol
        oscillating: Optional[DeviceSolution] = None
        triples: Optional[ChannelTriples] = None
        records: List[EscalationRecord] = []
        n_sim = 0
        n_ana = 0

        for stage in nx.topological_sort(self.cascade):
            node = self.cascade.nodes[stage]
            guard: Optional[Callable[[float], bool]] = node["guard"]

            if stage is EscalationStage.DONE:
                break
            if guard is not None:
                phase = triples.total.phase
                if not guard(phase):
                    continue
                rel_tol *= node["tolerance_factor"]
                method = self.method.opposite if node["swap_method"] else self.method
                record = EscalationRecord(
                    illumination_index=illumination_index,
                    light_intensity=light_intensity,
                    dc_voltage=dc_voltage,
                    frequency_hz=frequency_hz,
                    phase_deg=math.degrees(phase),
                    stage=stage,
                    method=method,
                    rel_tol=rel_tol,
                )
                records.append(record)
                log = logger.info if stage is EscalationStage.TIGHTEN_TOLERANCE else logger.warning
                log(f"{record.describe()}: {node['reason']}")
            else:
                method = self.method

            if node["resimulate"]:
                start = solution if oscillating is None else oscillating
                oscillating = self.simulator.simulate(
                    start, self.amplitude_v, frequency_hz, self.periods, self.tpoints_per_period, rel_tol
                )
                n_sim += 1
            triples = self.analyzer.extract(oscillating, True, method)
            n_ana += 1

            if node["swap_method"]:
                logger.warning(
                    f"Int: {light_intensity:g}; Vdc: {dc_voltage:.4g} V; Freq: {frequency_hz:.4g} Hz; "
                    f"Phase from the alternative method ({method}) is {triples.total.phase_deg:.4g} degrees"
                )

        logger.debug(
            f"Cell (#{illumination_index}, {frequency_hz:.4e} Hz) settled at phase "
            f"{triples.total.phase_deg:.4g} deg after {n_sim} simulation(s), {n_ana} analysis pass(es)."
        )
        return GateOutcome(
            triples=triples,
            tmax=float(oscillating.params.tmax),
            escalations=tuple(records),
            simulation_count=n_sim,
            analysis_count=n_ana,
            final_rel_tol=rel_tol,
        )
