# --- src/issim_core/constants.py ---
import logging
import math

logger = logging.getLogger(__name__)

# --- Sweep Constants ---

#: Number of complete oscillation periods simulated per frequency point. Fixed for
#: the whole sweep so that every cell is directly comparable. Dark solutions need
#: at least ~20 periods for a reliable demodulated phase.
DEFAULT_PERIODS: int = 20

#: Samples per oscillation period. A multiple of 4 so that the total number of time
#: points (1 + samples * periods) lands on quarter-period boundaries.
DEFAULT_TPOINTS_PER_PERIOD: int = 10 * 4

#: Relative tolerance handed to the transient simulator on the first attempt.
DEFAULT_REL_TOL: float = 1e-6

# --- Harmonic Extraction Gate ---

#: Phase margin (rad) around 0 and pi/2 inside which an extracted phase is treated
#: as numerically marginal.
PHASE_BOUNDARY_MARGIN_RAD: float = 0.006

#: Upper edge of the physically plausible phase range of the total current (rad).
MAX_PLAUSIBLE_PHASE_RAD: float = math.pi / 2

#: Factor by which the simulator tolerance is tightened at each escalation.
TOLERANCE_ESCALATION_FACTOR: float = 100.0

# --- Illumination ---

#: Light intensity (suns) of the reference illumination reported as `sun_index`.
REFERENCE_LIGHT_INTENSITY: float = 1.0

logger.debug("Defined core constants: DEFAULT_PERIODS, PHASE_BOUNDARY_MARGIN_RAD, TOLERANCE_ESCALATION_FACTOR")
