"""Chain Store

讀寫磁碟上的 chain 檔案與其附屬 body 檔案。
"""

import json
import os
import tempfile
import threading
import weakref
from pathlib import Path
from typing import Optional, Union

from ..utils.logging import get_logger
from .errors import ChainDecodeError, PersistError
from .fingerprint import ChainKey
from .models import RecordedExchange
from .naming import AsFile, FileRole, chain_file_name, file_name

logger = get_logger(__name__)


def pretty_json_bytes(data: bytes) -> bytes:
    """Pretty-print a JSON body, or return it untouched if it isn't JSON."""
    try:
        parsed = json.loads(data)
    except (UnicodeDecodeError, ValueError):
        return data
    return json.dumps(parsed, indent=2, ensure_ascii=False).encode("utf-8")


def atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temp file and ``os.replace``.

    Readers see either the old file or the new one, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


class ChainStore:
    """Chains rooted at one directory"""

    def __init__(self, root: Union[str, Path]):
        """初始化 Chain Store

        Args:
            root: Directory holding chain files (created on first write)
        """
        self.root = Path(root)
        self._write_guard = threading.Lock()
        # Entries vanish once no writer holds the lock.
        self._write_locks: "weakref.WeakValueDictionary[Path, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def chain_path(self, key: ChainKey) -> Path:
        return self.root / chain_file_name(key)

    def exists(self, key: ChainKey) -> bool:
        return self.chain_path(key).is_file()

    def _write_lock(self, path: Path) -> threading.Lock:
        with self._write_guard:
            lock = self._write_locks.get(path)
            if lock is None:
                lock = self._write_locks[path] = threading.Lock()
            return lock

    # Loading

    def _read_chain(self, path: Path) -> Optional[list[dict]]:
        try:
            raw = path.read_bytes()
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise ChainDecodeError(f"Unreadable chain file {path}: {e}", path) from e

        try:
            chain = json.loads(raw)
        except (UnicodeDecodeError, ValueError) as e:
            raise ChainDecodeError(f"Malformed chain file {path}: {e}", path) from e

        if not isinstance(chain, list):
            raise ChainDecodeError(
                f"Chain file {path} holds {type(chain).__name__}, expected a list", path
            )
        return chain

    def load(self, key: ChainKey) -> Optional[list[dict]]:
        """Read the raw chain for ``key``.

        Args:
            key: Chain key

        Returns:
            List of serialized exchanges, or None if no chain file exists

        Raises:
            ChainDecodeError: the file exists but is not a JSON list
        """
        return self._read_chain(self.chain_path(key))

    def resolve_exchange(
        self,
        key: ChainKey,
        chain: list[dict],
        index: int,
    ) -> tuple[RecordedExchange, int]:
        """Pick the exchange served at ``index`` and hydrate its bodies.

        Indexes past the end restart from the beginning (``index mod len``).

        Args:
            key: Chain key, used to locate sibling body files
            chain: Raw chain as returned by :meth:`load`
            index: Sequence index requested

        Returns:
            (exchange, index actually used)

        Raises:
            ChainDecodeError: empty chain, malformed entry, unsupported
                inline body encoding or missing sibling file
        """
        path = self.chain_path(key)
        if not chain:
            raise ChainDecodeError(f"Chain file {path} is empty", path)

        resolved = index % len(chain)
        entry = chain[resolved]

        try:
            exchange = RecordedExchange.from_dict(entry)
            request_file = file_name(
                FileRole.REQUEST_BODY, key, resolved, exchange.request.content_type
            )
            response_file = file_name(
                FileRole.RESPONSE_BODY, key, resolved, exchange.response.content_type
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ChainDecodeError(f"Malformed exchange {resolved} in {path}: {e}", path) from e

        if isinstance(request_file, AsFile):
            exchange.request.body = self._read_sibling(request_file.name)

        if isinstance(response_file, AsFile):
            exchange.response.body = self._read_sibling(response_file.name)

        return exchange, resolved

    def _read_sibling(self, name: str) -> bytes:
        path = self.root / name
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            logger.error(f"Missing body file: {path}")
            raise ChainDecodeError(f"Missing body file {path}", path) from e
        except OSError as e:
            raise ChainDecodeError(f"Unreadable body file {path}: {e}", path) from e

        logger.debug(f"Loaded body from {path}")
        return data

    def load_exchange(self, key: ChainKey, index: int) -> Optional[tuple[RecordedExchange, int]]:
        """Load and resolve in one step; None if there is no chain file."""
        chain = self.load(key)
        if chain is None:
            return None
        return self.resolve_exchange(key, chain, index)

    # Recording

    def append(self, key: ChainKey, exchange: RecordedExchange) -> int:
        """Append an exchange to its chain.

        Sibling body files are written first, the chain file last, each via
        an atomic replace, so a previously valid chain is never clobbered by
        a half-written one.

        Args:
            key: Chain key
            exchange: Exchange to record

        Returns:
            Position of the new exchange in the chain

        Raises:
            PersistError: the existing chain is corrupt or a write failed
        """
        path = self.chain_path(key)

        with self._write_lock(path):
            try:
                chain = self._read_chain(path) or []
            except ChainDecodeError as e:
                raise PersistError(f"Refusing to overwrite corrupt chain {path}: {e}", path) from e

            index = len(chain)

            request_file = file_name(
                FileRole.REQUEST_BODY, key, index, exchange.request.content_type
            )
            response_file = file_name(
                FileRole.RESPONSE_BODY, key, index, exchange.response.content_type
            )

            chain.append(exchange.to_dict(
                inline_request_body=not isinstance(request_file, AsFile),
                inline_response_body=not isinstance(response_file, AsFile),
            ))

            try:
                if isinstance(request_file, AsFile):
                    self._write_sibling(request_file.name, exchange.request.body or b"")
                if isinstance(response_file, AsFile):
                    self._write_sibling(response_file.name, exchange.response.body or b"")

                data = json.dumps(chain, indent=2, ensure_ascii=False).encode("utf-8")
                atomic_write(path, data)
            except OSError as e:
                logger.error(f"Failed to persist request to {path}: {e}")
                raise PersistError(f"Failed to write {path}: {e}", path) from e

        logger.debug(f"Persisted exchange {index} to {path}")
        return index

    def _write_sibling(self, name: str, body: bytes) -> None:
        path = self.root / name
        if path.suffix == ".json":
            body = pretty_json_bytes(body)
        atomic_write(path, body)
