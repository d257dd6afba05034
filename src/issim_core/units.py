# --- src/issim_core/units.py ---
import logging
from typing import Union

import pint

logger = logging.getLogger(__name__)
ureg = pint.UnitRegistry()
Quantity = ureg.Quantity
logger.info("Pint Unit Registry initialized.")

# Device currents are area-normalised (A/cm^2), so impedance is reported in ohm*cm^2 and
# capacitance in F/cm^2.
AREAL_IMPEDANCE_UNIT = ureg.ohm * ureg.cm ** 2
AREAL_CAPACITANCE_UNIT = ureg.farad / ureg.cm ** 2


def to_magnitude(value: Union[str, float, int, Quantity], unit: str) -> float:
    """
    Converts a user-supplied value into a float magnitude in `unit`.

    Strings are parsed by pint ("1 MHz", "2 mV"); bare numbers are taken to be
    already expressed in `unit`.

    Raises:
        pint.DimensionalityError: If the value's dimension does not match `unit`.
        pint.UndefinedUnitError: If the string names an unknown unit.
    """
    if isinstance(value, bool):
        raise TypeError(f"Expected a number or a quantity string, got boolean {value!r}.")
    if isinstance(value, (int, float)):
        return float(value)
    qty = value if isinstance(value, Quantity) else ureg.Quantity(value)
    if qty.dimensionless and not ureg.Quantity(1, unit).dimensionless:
        # "1e6" parsed by pint is dimensionless; treat it like a bare number.
        return float(qty.magnitude)
    return float(qty.to(unit).magnitude)
