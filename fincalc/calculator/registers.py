"""
TVM registers and cash flow entries.
"""

import enum
from dataclasses import dataclass, fields
from typing import Dict, List, Optional

from fincalc.calculator.errors import InputError


class Register(str, enum.Enum):
    """The five TVM registers."""

    N = "N"
    IYR = "IYR"
    PV = "PV"
    PMT = "PMT"
    FV = "FV"

    @classmethod
    def parse(cls, value) -> "Register":
        """Accept a Register, its id ("IYR") or a key id ("iyr", "i/yr")."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper().replace("/", "")
        try:
            return cls(key)
        except ValueError:
            raise InputError(f"Unknown register: {value!r}") from None


@dataclass
class RegisterSet:
    """Five independently nullable TVM slots. IYR is an annual percent."""

    N: Optional[float] = None
    IYR: Optional[float] = None
    PV: Optional[float] = None
    PMT: Optional[float] = None
    FV: Optional[float] = None

    def get(self, register: Register) -> Optional[float]:
        return getattr(self, Register.parse(register).value)

    def set(self, register: Register, value: Optional[float]) -> None:
        setattr(self, Register.parse(register).value, value)

    def blanks(self) -> List[Register]:
        return [Register(f.name) for f in fields(self) if getattr(self, f.name) is None]

    def filled(self) -> List[Register]:
        return [Register(f.name) for f in fields(self) if getattr(self, f.name) is not None]

    def as_dict(self) -> Dict[str, Optional[float]]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def copy(self) -> "RegisterSet":
        return RegisterSet(**self.as_dict())

    def clear(self) -> None:
        for f in fields(self):
            setattr(self, f.name, None)


@dataclass
class CashFlowEntry:
    """A cash flow amount repeated ``count`` consecutive periods."""

    amount: float
    count: int = 1


@dataclass
class SolveEvent:
    """Emitted after every successful TVM solve."""

    registers: Dict[str, Optional[float]]
    solved_field: Register
    payments_per_year: int = 1
    is_annuity_due: bool = False
