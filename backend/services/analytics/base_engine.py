from abc import ABC, abstractmethod
from typing import Mapping, Sequence

import pandas as pd

from services.tables.schema import Record, TableKind


class BaseAnalyticsEngine(ABC):
    def __init__(
        self,
        records: Mapping[TableKind, Sequence[Record]],
    ):
        # snapshot owned by the caller; engines only read it
        self.records = records

    def table(self, kind: TableKind) -> Sequence[Record]:
        return self.records.get(kind) or ()

    @abstractmethod
    def load_data(self) -> dict[str, pd.DataFrame]:
        """
        Must return one DataFrame per table the engine reads, with logical
        (alias-resolved) column names, e.g.
        {
            "pins": DataFrame,
            "analysis": DataFrame
        }
        """
        ...

    @abstractmethod
    def compute(self) -> dict:
        """
        Must return JSON-serializable analytics
        """
        ...
