"""
Object layout of the page store and async reads on top of Django storage.
"""
from typing import Optional

from asgiref.sync import sync_to_async
from django.core.files.storage import Storage
from loguru import logger

from ebook.errors import NotFoundError, StoreUnavailableError
from ebook.results import ContentResult

PAGE_KEY_PREFIX = 'pages/'
COVER_KEY = 'cover.png'


def page_key(number: int) -> str:
    """Object key for a page, e.g. ``pages/0007.png`` for page 7."""
    return f'{PAGE_KEY_PREFIX}{number:04d}.png'


class ObjectStore:
    def __init__(self, storage: Storage):
        self.storage = storage

    def _read(self, key: str) -> Optional[bytes]:
        try:
            with self.storage.open(key, 'rb') as fh:
                return fh.read()
        except FileNotFoundError:
            return None

    async def read(self, key: str) -> Optional[bytes]:
        return await sync_to_async(self._read, thread_sensitive=False)(key)


async def resolve(store: ObjectStore, key: str) -> ContentResult:
    try:
        content = await store.read(key)
    except OSError as exc:
        logger.exception('page store read of {} failed: {}', key, exc)
        return ContentResult(error=StoreUnavailableError())

    if content is None:
        logger.warning('object {} is missing from the page store', key)
        return ContentResult(error=NotFoundError())
    return ContentResult(content=content)
