"""Local file storage implementation."""
import logging
import os
from pathlib import Path

import aiofiles

from libshare.domain.repositories import IStorageService

logger = logging.getLogger(__name__)


class LocalStorageService(IStorageService):
    """File storage under a base directory, addressed by relative path.

    Paths are chosen by the caller (``uploads/<user>_<name>``,
    ``images/cover_<user>.png`` ...); writing to an existing path overwrites it.
    """

    def __init__(self, base_path: str = "./static"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, file_path: str) -> Path:
        full_path = (self.base_path / file_path).resolve()
        if not full_path.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"Path escapes storage root: {file_path}")
        return full_path

    async def save_file(self, file_content: bytes, file_path: str) -> str:
        try:
            full_path = self._resolve(file_path)
            full_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(full_path, "wb") as f:
                await f.write(file_content)

            logger.info(f"File saved: {file_path}, size: {len(file_content)} bytes")
            return file_path

        except Exception as e:
            logger.error(f"Failed to save file {file_path}: {str(e)}", exc_info=True)
            raise

    async def get_file(self, file_path: str) -> bytes:
        try:
            full_path = self._resolve(file_path)
            async with aiofiles.open(full_path, "rb") as f:
                content = await f.read()
            logger.debug(f"File retrieved: {file_path}, size: {len(content)} bytes")
            return content
        except FileNotFoundError:
            logger.error(f"File not found: {file_path}")
            raise
        except Exception as e:
            logger.error(f"Failed to read file {file_path}: {str(e)}", exc_info=True)
            raise

    async def delete_file(self, file_path: str) -> bool:
        full_path = self._resolve(file_path)
        try:
            os.remove(full_path)
            logger.info(f"File deleted: {file_path}")
            return True
        except FileNotFoundError:
            logger.warning(f"File not found for deletion: {file_path}")
            return False
        except Exception as e:
            logger.error(f"Failed to delete file {file_path}: {str(e)}", exc_info=True)
            raise

    async def exists(self, file_path: str) -> bool:
        return self._resolve(file_path).is_file()
