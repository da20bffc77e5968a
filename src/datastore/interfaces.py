import abc
from typing import Union

from .key import Key
from .query import Query, Results

KeyLike = Union[Key, str]


class IDatastore(abc.ABC):
    """
    Key-value store contract: values are opaque bytes addressed by hierarchical keys.
    """

    @abc.abstractmethod
    async def has(self, key: KeyLike) -> bool:
        """Returns whether key is mapped to a value."""
        pass

    @abc.abstractmethod
    async def get_size(self, key: KeyLike) -> int:
        """Returns the size of the value named by key. Raises NotFoundError (size -1) on a miss."""
        pass

    @abc.abstractmethod
    async def get(self, key: KeyLike) -> bytes:
        """Returns the value named by key. Raises NotFoundError on a miss."""
        pass

    @abc.abstractmethod
    async def put(self, key: KeyLike, value: bytes):
        """Stores value under key, replacing any previous value."""
        pass

    @abc.abstractmethod
    async def delete(self, key: KeyLike):
        """Removes key. Deleting a missing key is not an error."""
        pass

    @abc.abstractmethod
    async def sync(self, prefix: KeyLike):
        """Persists pending writes under prefix."""
        pass

    @abc.abstractmethod
    async def query(self, q: Query) -> Results:
        """Runs q and returns a lazy stream of results."""
        pass

    @abc.abstractmethod
    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
