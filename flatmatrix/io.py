"""設定の [matrices.*] から FlatMatrix を組み立てる入出力ヘルパ。

各エントリは次のどちらか:
    - インライン: {"data": [...], "row_len": n}
    - CSV:        {"csv": "path/to/file.csv"}  （ヘッダなし、1 行 = 行列の 1 行）

CSV の読み込みには pandas を使う。相対パスは設定ファイルのあるディレクトリ基準で解決する。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from .matrix import FlatMatrix

logger = logging.getLogger(__name__)


def read_csv_matrix(path: Path) -> FlatMatrix:
    """ヘッダなし CSV を読み込んで行列にする。

    Raises:
        FileNotFoundError: ファイルが存在しない場合。
        ValueError: 空、または数値以外を含む場合。
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Matrix CSV not found: {path}")

    frame = pd.read_csv(path, header=None)
    if frame.empty:
        raise ValueError(f"CSV が空です: {path}")
    # 欠損（行ごとの列数の不一致）は行列として解釈できないため拒否する。
    if frame.isna().to_numpy().any():
        raise ValueError(f"CSV に欠損値または長さの異なる行があります: {path}")
    if not all(pd.api.types.is_numeric_dtype(dtype) for dtype in frame.dtypes):
        raise ValueError(f"CSV には数値のみを含める必要があります: {path}")

    logger.debug("Loaded %s with shape %s", path, frame.shape)
    return FlatMatrix.from_numpy(frame.to_numpy())


def load_matrix(entry: Mapping[str, Any], base_dir: Optional[Path] = None) -> FlatMatrix:
    """1 エントリ分の設定から行列を構築する。"""

    if not isinstance(entry, Mapping):
        raise ValueError(f"行列の設定は table/object である必要があります: {entry!r}")

    if "csv" in entry:
        extra = sorted(set(entry) - {"csv"})
        if extra:
            raise ValueError(f"csv 指定の行列に余計なキーがあります: {extra}")
        csv_path = Path(entry["csv"])
        if base_dir is not None and not csv_path.is_absolute():
            csv_path = Path(base_dir) / csv_path
        return read_csv_matrix(csv_path)

    return FlatMatrix.from_config(entry)


def load_matrices(
    config: Mapping[str, Any], base_dir: Optional[Path] = None
) -> Dict[str, FlatMatrix]:
    """設定の matrices テーブルをすべて読み込み、名前 -> 行列の辞書を返す。

    Args:
        config: load_config の戻り値。
        base_dir: CSV の相対パスを解決する基準ディレクトリ。

    Returns:
        名前をキーとする FlatMatrix の辞書（設定での定義順）。

    Raises:
        ValueError: matrices が無い/空、またはエントリが不正な場合。
    """

    entries = config.get("matrices")
    if not isinstance(entries, Mapping) or not entries:
        raise ValueError("設定に matrices テーブルがありません。")

    matrices: Dict[str, FlatMatrix] = {}
    for name, entry in entries.items():
        matrices[str(name)] = load_matrix(entry, base_dir)
        logger.debug("Matrix %r: shape=%s", name, matrices[str(name)].shape)
    return matrices


def matrix_to_frame(matrix: FlatMatrix) -> pd.DataFrame:
    """表示・保存用に DataFrame へ変換する（行 = 行列の行）。"""

    return pd.DataFrame(matrix.rows())
