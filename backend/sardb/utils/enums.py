from __future__ import annotations

import enum
from typing import List, Type


def enum_values(enum_cls: Type[enum.Enum]) -> List[str]:
    """
    `values_callable` for sqlalchemy.Enum so the database stores the
    lower-case values ("active") rather than member names ("ACTIVE").
    """
    return [member.value for member in enum_cls]
