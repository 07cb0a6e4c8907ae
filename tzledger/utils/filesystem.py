#!filepath: tzledger/utils/filesystem.py
import json
from pathlib import Path
from typing import Any, List, Optional

from tzledger.utils.errors import StoredDataError
from tzledger.utils.logger import logs


class FileSystem:
    """
    统一文件系统工具
    - 自动创建目录
    - 安全写入文件（临时文件 → rename）
    - JSON 读写（解析失败 → StoredDataError）
    - 扫描目录
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logs.debug(f"[FS] 创建目录: {p}")
        return p

    @staticmethod
    def safe_write(path: str | Path, data: bytes) -> None:
        """
        原子写入（避免部分写入导致文件损坏）
            1) 先写入 tmp 文件
            2) rename → 正式文件
        """
        path = Path(path)
        FileSystem.ensure_dir(path.parent)

        tmp_path = path.with_name(path.name + ".tmp")

        with open(tmp_path, "wb") as f:
            f.write(data)

        tmp_path.replace(path)
        logs.debug(f"[FS] 原子写入完成: {path}")

    @staticmethod
    def write_json(path: str | Path, content: Any) -> None:
        data = json.dumps(content, ensure_ascii=False).encode("utf-8")
        FileSystem.safe_write(path, data)

    @staticmethod
    def read_json(path: str | Path) -> Any:
        """
        读取 JSON；文件缺失或内容损坏都视为 StoredDataError。
        """
        p = Path(path)
        try:
            raw = p.read_bytes()
        except OSError as e:
            raise StoredDataError(f"cannot read {p}: {e}") from e

        try:
            return json.loads(raw)
        except ValueError as e:
            raise StoredDataError(f"malformed JSON in {p}: {e}") from e

    @staticmethod
    def scan_dir(path: str | Path, suffix: Optional[str] = None) -> List[Path]:
        """
        返回目录下所有文件（可按后缀过滤）
        """
        p = Path(path)
        if not p.exists():
            return []

        files = []
        for f in p.iterdir():
            if f.is_file():
                if suffix is None or f.suffix == suffix:
                    files.append(f)

        return sorted(files)
