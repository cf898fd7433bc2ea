"""
Soil-test parameter readings.

A ``ParameterReading`` is one row of the lab sheet's results table: serial
number, parameter label, unit, result, and test method. Readings are frozen
once extracted; classification produces a new reading with ``rating`` set
rather than mutating the original.

Results arrive either as numbers or as strings (the lab sometimes types
values as text, e.g. ``"6.8"`` or ``"< 0.5"``). ``parse_numeric()`` is the one
place that turns a raw result into a float; everything downstream treats a
``None`` from it as "no usable value".
"""

from __future__ import annotations

import math
import re
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

# Leading decimal number, optionally signed, with optional exponent.
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_numeric(value: object) -> Optional[float]:
    """Coerce a raw reading result to a finite float.

    Numbers pass through. Strings are parsed from their leading numeric
    prefix, so ``"6.8"`` and ``"6.8 dS/m"`` both give ``6.8``. Anything else
    (empty strings, text, booleans, NaN, infinities) gives ``None``.

    Args:
        value: The raw result cell value.

    Returns:
        A finite float, or ``None``.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match is None:
            return None
        number = float(match.group(1))
    else:
        return None
    return number if math.isfinite(number) else None


class ParameterReading(BaseModel):
    """One measured soil parameter from a lab report.

    Attributes:
        sequence_number: The lab's S.No. for the row; drives categorisation.
        parameter_name:  Parameter label as printed on the sheet (trimmed).
        unit:            Measurement unit, ``"-"`` or ``""`` when unitless.
        result:          Raw result, numeric or text.
        test_method:     Lab method reference, if printed.
        rating:          Range label assigned at assembly time, e.g. ``"Low"``.
    """

    model_config = ConfigDict(frozen=True)

    sequence_number: int
    parameter_name: str
    unit: str = ""
    result: Union[float, str] = ""
    test_method: Optional[str] = None
    rating: Optional[str] = None

    @field_validator("parameter_name")
    @classmethod
    def strip_parameter_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("parameter_name must be non-empty.")
        return v

    @property
    def numeric_result(self) -> Optional[float]:
        """``result`` as a finite float, or ``None`` when not numeric."""
        return parse_numeric(self.result)
