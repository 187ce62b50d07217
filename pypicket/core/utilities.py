"""Enum conversion, results models, and small numeric helpers."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

import numpy as np
from pydantic import BaseModel, Field

from ..version import __version__
from .warnings import WarningCollectorMixin


def convert_to_enum(value: str | Enum | None, enum: type[Enum]) -> Enum:
    """Return the value as a member of the enum; other values are looked up by enum value."""
    return value if isinstance(value, enum) else enum(value)


class ResultBase(BaseModel):
    """The fields shared by every results model."""

    pypicket_version: str = Field(
        default=__version__, description="The pypicket version that ran the analysis."
    )
    date_of_analysis: datetime = Field(default_factory=datetime.today)
    warnings: list[dict] = Field(
        default_factory=list,
        description="The Python warnings raised during the analysis.",
    )


T = TypeVar("T", bound=ResultBase)


class ResultsDataMixin(WarningCollectorMixin, Generic[T]):
    """Adds :meth:`results_data` to an analysis that implements ``_generate_results_data``."""

    def _generate_results_data(self) -> T:
        raise NotImplementedError

    def results_data(
        self,
        as_dict: bool = False,
        as_json: bool = False,
        exclude: set[str] | None = None,
    ) -> T | dict | str:
        """The results as a pydantic model (the default), a dict, or a JSON string.

        Parameters
        ----------
        as_dict
            Return a dict of JSON types. NaN values become None.
        as_json
            Return a JSON string. Can't be combined with ``as_dict``.
        exclude
            Field names to leave out of the dict or JSON string.
        """
        if as_dict and as_json:
            raise ValueError("Choose either as_dict or as_json, not both")
        data = self._generate_results_data()
        if not (as_dict or as_json):
            return data
        serialized = data.model_dump_json(exclude=exclude)
        return json.loads(serialized) if as_dict else serialized


def adjacent_differences(values: Iterable[float]) -> list[float]:
    """The absolute differences between neighboring values, in the order given."""
    values = np.asarray(list(values), dtype=float)
    return np.abs(np.diff(values)).tolist()
