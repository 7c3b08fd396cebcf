from __future__ import annotations

import enum
from typing import Type

from sqlalchemy import Enum as SAEnum


def value_enum(enum_cls: Type[enum.Enum], name: str) -> SAEnum:
    """
    Non-native SQL enum persisting the member *values*.

    The SPA and backup files use lower-case values ('cash', 'deposit'), so
    these are what land in the column rather than the member names.
    """
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
