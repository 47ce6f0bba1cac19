"""Abstract transaction boundary spanning several repositories."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager


class TransactionManager(ABC):

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Serialize a read-modify-write section across repositories.

        Sections may nest; the outermost one owns the boundary.  When the
        outermost section exits with an exception, every write made inside
        it is rolled back.
        """
