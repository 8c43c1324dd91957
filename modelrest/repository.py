"""Model repositories.

A repository persists the records of a single model. All operations are
coroutines, the request handlers await them without any locking: concurrent
writes to the same record are resolved by the repository (last write wins).

An :class:`Adapter` provides one repository per model, eg. the MemoryAdapter
(cfr. :mod:`modelrest.memory`) or the SqlAdapter (cfr. :mod:`modelrest.sqla`).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, MutableMapping, Optional

from .model import ModelDescriptor, Record
from .paging import PageSpec
from .query import Predicate


class ModelRepository(ABC):
    """
    Persistence of the records of one model
    """

    def __init__(self, model: ModelDescriptor) -> None:
        self.model = model

    @abstractmethod
    async def exists(self, uuid: str) -> bool:
        """
        :return: whether a record with the given uuid exists
        """

    @abstractmethod
    async def load(self, uuid: str) -> Record:
        """
        :return: the record with the given uuid
        :raises NotFoundError: if there's no such record
        """

    @abstractmethod
    async def save(self, record: Record, ignore_unloaded: bool = False) -> Record:
        """
        Persist the record, a new uuid is assigned when saving a record for the first time

        :param record: record to save
        :param ignore_unloaded: accept a record with an uuid that doesn't exist yet (create-or-replace)
        :return: the saved record
        """

    @abstractmethod
    async def remove(self, uuid: str) -> None:
        """
        Remove the record with the given uuid
        """

    @abstractmethod
    async def find(
        self, predicate: Predicate, page: PageSpec, meta: Optional[MutableMapping[str, Any]] = None, load_records: bool = True
    ) -> List[Record]:
        """
        :param predicate: filter, cfr. modelrest.query.parse_query
        :param page: sort and pagination
        :param meta: collector receiving the total number of matches as "count" (before pagination)
        :param load_records: if False, the records may contain the uuid only
        :return: the records matching the predicate
        """

    @abstractmethod
    async def list(self, page: PageSpec, meta: Optional[MutableMapping[str, Any]] = None, load_records: bool = True) -> List[Record]:
        """
        :param page: sort and pagination
        :param meta: collector receiving the total number of records as "count" (before pagination)
        :param load_records: if False, the records may contain the uuid only
        :return: all records of the model
        """


class Adapter(ABC):
    """
    Creates the repositories of the exposed models
    """

    def __init__(self) -> None:
        self._repositories: Dict[str, ModelRepository] = {}

    def repository(self, model: ModelDescriptor) -> ModelRepository:
        """
        :return: the repository of the model, created on first use
        """
        repository = self._repositories.get(model.name)
        if repository is None:
            repository = self._repositories[model.name] = self.create_repository(model)
        return repository

    @abstractmethod
    def create_repository(self, model: ModelDescriptor) -> ModelRepository:
        """
        :return: a new repository for the model
        """
