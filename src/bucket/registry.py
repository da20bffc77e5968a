import logging
from typing import Callable, Dict, List
from urllib.parse import ParseResult, parse_qsl, urlparse

from .ibucket import IBucket

logger = logging.getLogger(__name__)

# Builds a bucket from a parsed URL and its query parameters.
BucketOpener = Callable[[ParseResult, Dict[str, str]], IBucket]


class BucketRegistry:
    """Registry mapping URL schemes to the openers of their bucket drivers"""

    _registry: Dict[str, BucketOpener] = {}

    @classmethod
    def register(cls, scheme: str, opener: BucketOpener, replace: bool = False):
        """Register an opener for a URL scheme"""
        scheme = scheme.lower()
        if scheme in cls._registry and not replace:
            raise ValueError(f"Bucket scheme already registered: {scheme}")
        cls._registry[scheme] = opener

    @classmethod
    def unregister(cls, scheme: str):
        cls._registry.pop(scheme.lower(), None)

    @classmethod
    def get_opener(cls, scheme: str) -> BucketOpener:
        """Get the opener for a given scheme"""
        scheme = scheme.lower()
        if scheme not in cls._registry:
            raise ValueError(
                f"No bucket driver registered for scheme: {scheme!r} "
                f"(known schemes: {', '.join(cls.schemes())})"
            )
        return cls._registry[scheme]

    @classmethod
    def schemes(cls) -> List[str]:
        return sorted(cls._registry)

    @classmethod
    def open(cls, url: str) -> IBucket:
        """Open a bucket from a URL such as 'mem://', 'file:///data' or 's3://my-bucket'"""
        parsed = urlparse(url)
        if not parsed.scheme:
            raise ValueError(f"Bucket URL has no scheme: {url!r}")
        opener = cls.get_opener(parsed.scheme)
        params = dict(parse_qsl(parsed.query))
        logger.info(f"Opening bucket {parsed.scheme}://{parsed.netloc}{parsed.path}")
        return opener(parsed, params)


def open_bucket(url: str) -> IBucket:
    return BucketRegistry.open(url)
