"""Fixture Manager

檢視與維護錄製下來的 chain fixtures。
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..utils.logging import get_logger
from .chain_store import ChainStore
from .errors import ChainDecodeError
from .fingerprint import ChainKey

logger = get_logger(__name__)

# <base>-<16 hex fingerprint>.json; sibling body files never match.
CHAIN_FILE_PATTERN = re.compile(r"^(?P<base>.+)-(?P<fingerprint>[0-9a-f]{16})\.json$")


@dataclass
class VerifyReport:
    """Result of checking every exchange of every chain"""

    chains: int = 0
    exchanges: int = 0
    problems: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


class FixtureManager:
    """Fixture 管理器"""

    def __init__(self, base_dir: Union[str, Path] = "tests/fixtures/http"):
        """初始化 Fixture 管理器

        Args:
            base_dir: Directory chains were recorded to
        """
        self.base_dir = Path(base_dir)
        self.store = ChainStore(self.base_dir)

    def chain_key(self, path: Path) -> Optional[ChainKey]:
        """Recover the chain key from a chain file path, None for other files."""
        rel_path = path.relative_to(self.base_dir).as_posix()
        match = CHAIN_FILE_PATTERN.match(rel_path)
        if match is None:
            return None
        return ChainKey(base_name=match["base"], fingerprint=match["fingerprint"])

    def chain_files(self) -> list[Path]:
        if not self.base_dir.exists():
            return []
        return sorted(
            path for path in self.base_dir.glob("**/*.json")
            if self.chain_key(path) is not None
        )

    def read_chain(self, path: Union[str, Path]) -> list[dict]:
        """Raw chain entries of one chain file.

        Raises:
            ChainDecodeError: the file is not a JSON list
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                chain = json.load(f)
        except ValueError as e:
            raise ChainDecodeError(f"Malformed chain file {path}: {e}", path) from e

        if not isinstance(chain, list):
            raise ChainDecodeError(f"Chain file {path} is not a list", path)
        return chain

    def list_chains(self) -> list[dict]:
        """列出所有 chains

        Returns:
            One dict per chain file: path, exchange count (None if the file
            is unreadable), size and modification time
        """
        chains = []

        for path in self.chain_files():
            try:
                exchanges: Optional[int] = len(self.read_chain(path))
            except ChainDecodeError as e:
                logger.warning(str(e))
                exchanges = None

            stat = path.stat()
            chains.append({
                "path": path.relative_to(self.base_dir).as_posix(),
                "exchanges": exchanges,
                "size_bytes": stat.st_size,
                "modified_at": datetime.fromtimestamp(stat.st_mtime).isoformat(),
            })

        return chains

    def verify(self) -> VerifyReport:
        """Load every exchange the way a replay would.

        Returns:
            VerifyReport listing every chain or exchange that would fail
        """
        report = VerifyReport()

        for path in self.chain_files():
            key = self.chain_key(path)
            report.chains += 1
            try:
                chain = self.store.load(key) or []
            except ChainDecodeError as e:
                report.problems.append(str(e))
                continue

            if not chain:
                report.problems.append(f"Chain file {path} is empty")
                continue

            for index in range(len(chain)):
                report.exchanges += 1
                try:
                    self.store.resolve_exchange(key, chain, index)
                except ChainDecodeError as e:
                    report.problems.append(f"{path} [{index}]: {e}")

        logger.info(
            f"Verified {report.exchanges} exchanges in {report.chains} chains, "
            f"{len(report.problems)} problems"
        )
        return report

    def cleanup_temp_files(self) -> int:
        """清理中斷寫入留下的暫存檔

        Returns:
            Number of files removed
        """
        deleted = 0
        if not self.base_dir.exists():
            return deleted

        for tmp_file in self.base_dir.glob("**/.*.tmp"):
            tmp_file.unlink(missing_ok=True)
            deleted += 1
            logger.debug(f"Deleted temp file: {tmp_file}")

        logger.info(f"Cleaned up {deleted} temp files")
        return deleted
