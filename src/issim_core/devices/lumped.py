# src/issim_core/devices/lumped.py
"""
A lumped reference solar-cell device implementing the simulator, bias extractor
and asymmetrizer protocols.

The device is a diode (recombination current) with a photocurrent, in parallel
with the geometric capacitance and an ionic branch. The ionic branch is a
double-layer capacitance charged through a resistance inversely proportional to
the ion mobility. Only the ionic charge is a dynamic state, integrated with
`scipy.integrate.solve_ivp`; every other current follows the applied voltage
algebraically. The small-signal response is therefore known in closed form,
which makes the device useful for checking a sweep end to end.

Sign convention: currents are positive in the forward (injection) direction, so
the photocurrent enters with a negative sign.
"""
import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np
from scipy import constants
from scipy.integrate import solve_ivp

from ..analysis.harmonics import TraceHarmonicAnalyzer
from ..collaborators import DeviceToolkit, HarmonicAnalyzer, ResultPlotter
from ..data_structures import CurrentTrace, DeviceParameters, DeviceSolution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LumpedState:
    """Simulator-owned payload of a lumped-device solution."""
    applied_voltage: float
    ion_charge: float


@dataclass(frozen=True)
class LumpedDevice:
    """
    Parameters of the lumped device; all quantities are area-normalised.

    Attributes:
        geometric_capacitance: [F cm^-2]
        saturation_current: Diode dark saturation current [A cm^-2]
        ideality: Diode ideality factor
        photocurrent_1sun: Photogenerated current at 1 sun [A cm^-2]
        ionic_capacitance: Ionic double-layer capacitance [F cm^-2]
        ionic_resistance_ref: Ionic resistance at `reference_ion_mobility` [ohm cm^2]
        reference_ion_mobility: [cm^2 V^-1 s^-1]
        temperature: [K]
    """
    geometric_capacitance: float = 1e-7
    saturation_current: float = 1e-12
    ideality: float = 1.5
    photocurrent_1sun: float = 0.02
    ionic_capacitance: float = 1e-5
    ionic_resistance_ref: float = 1e3
    reference_ion_mobility: float = 1e-10
    temperature: float = 300.0

    @property
    def thermal_voltage(self) -> float:
        return constants.k * self.temperature / constants.e

    def photocurrent(self, light_intensity: float) -> float:
        return self.photocurrent_1sun * light_intensity

    def recombination_current(self, voltage):
        return self.saturation_current * np.expm1(voltage / (self.ideality * self.thermal_voltage))

    def open_circuit_voltage(self, light_intensity: float) -> float:
        j_ph = self.photocurrent(light_intensity)
        return self.ideality * self.thermal_voltage * math.log1p(j_ph / self.saturation_current)

    def ionic_resistance(self, ion_mobility: float) -> float:
        if ion_mobility <= 0:
            return math.inf
        return self.ionic_resistance_ref * self.reference_ion_mobility / ion_mobility

    # --- Solution factory ---

    def steady_state(
        self,
        light_intensity: float = 0.0,
        open_circuit: bool = False,
        applied_voltage: float = 0.0,
        ion_mobility: Optional[float] = None,
    ) -> DeviceSolution:
        """
        Builds the steady-state solution at the given illumination. At open circuit
        the bias is the open-circuit voltage and `applied_voltage` is ignored.
        """
        voltage = self.open_circuit_voltage(light_intensity) if open_circuit else applied_voltage
        params = DeviceParameters(
            light_intensity=light_intensity,
            open_circuit=open_circuit,
            ion_mobility=self.reference_ion_mobility if ion_mobility is None else ion_mobility,
        )
        return DeviceSolution(params=params, state=LumpedState(voltage, self.ionic_capacitance * voltage))

    def toolkit(
        self, analyzer: Optional[HarmonicAnalyzer] = None, plotter: Optional[ResultPlotter] = None
    ) -> DeviceToolkit:
        """Bundles this device with an analyzer (default `TraceHarmonicAnalyzer`)."""
        return DeviceToolkit(
            simulator=self,
            analyzer=analyzer if analyzer is not None else TraceHarmonicAnalyzer(),
            bias_extractor=self,
            asymmetrizer=self,
            plotter=plotter,
        )

    # --- Collaborator protocols ---

    def bias(self, solution: DeviceSolution) -> float:
        return float(solution.state.applied_voltage)

    def halve(self, solution: DeviceSolution) -> DeviceSolution:
        # A lumped device has no spatial symmetry to break; the half-device is the
        # same state flagged as asymmetric.
        return solution.with_params(open_circuit=False)

    def simulate(
        self,
        solution: DeviceSolution,
        amplitude_v: float,
        frequency_hz: float,
        periods: int,
        tpoints_per_period: int,
        rel_tol: float,
    ) -> DeviceSolution:
        state: LumpedState = solution.state
        v_dc = state.applied_voltage
        omega = 2 * np.pi * frequency_hz
        tmax = periods / frequency_hz
        time_s = np.linspace(0.0, tmax, 1 + tpoints_per_period * periods)
        voltage = v_dc + amplitude_v * np.sin(omega * time_s)

        r_ion = self.ionic_resistance(solution.params.ion_mobility)
        if math.isinf(r_ion):
            ion_charge = np.full_like(time_s, state.ion_charge)
            j_ion = np.zeros_like(time_s)
        else:
            c_ion = self.ionic_capacitance

            def rhs(t, q):
                return (v_dc + amplitude_v * np.sin(omega * t) - q / c_ion) / r_ion

            sol = solve_ivp(
                rhs, (0.0, tmax), [state.ion_charge], t_eval=time_s, method="Radau",
                rtol=rel_tol, atol=rel_tol * c_ion * abs(amplitude_v) * 1e-2,
                max_step=1.0 / (4 * frequency_hz),
            )
            if not sol.success:
                raise RuntimeError(f"Ionic transient integration failed at {frequency_hz:.4e} Hz: {sol.message}")
            ion_charge = sol.y[0]
            j_ion = (voltage - ion_charge / c_ion) / r_ion

        j_rec = self.recombination_current(voltage)
        j_acc = self.geometric_capacitance * amplitude_v * omega * np.cos(omega * time_s)
        total = j_rec - self.photocurrent(solution.params.light_intensity) + j_acc + j_ion

        trace = CurrentTrace(
            time_s=time_s,
            voltage_v=voltage,
            total=total,
            ionic=j_ion,
            recombination=j_rec,
            accumulation=j_acc,
        )
        return DeviceSolution(
            params=replace(solution.params, tmax=tmax),
            state=LumpedState(v_dc, float(ion_charge[-1])),
            trace=trace,
            frequency_hz=frequency_hz,
        )
