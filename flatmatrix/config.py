"""設定ファイル（TOML/JSON）を読み込むユーティリティ。

目的:
    行列の定義と演算手順（plan）を設定ファイルに書き出しておき、
    同じ計算を何度でも再現できるようにする。読み込んだ結果は dict として返す。

想定する構造:
    [matrices.a]
    data = [1, 0, 0, 1]
    row_len = 2

    [[operations]]
    name = "sum"
    op = "add"
    left = "a"
    right = "b"

トップレベルに置けるのは matrices と operations だけ。綴り間違いのキーは黙って
無視されると plan が空のまま走ってしまうため、読み込み時に弾く。
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Mapping

TOP_LEVEL_KEYS = frozenset({"matrices", "operations"})


def _read_toml(handle: BinaryIO) -> Any:
    return tomllib.load(handle)


def _read_json(handle: BinaryIO) -> Any:
    return json.loads(handle.read().decode("utf-8"))


# 拡張子（小文字） -> リーダ。形式を増やす場合はここに追加する。
_READERS: Dict[str, Callable[[BinaryIO], Any]] = {
    ".toml": _read_toml,
    ".json": _read_json,
}


def check_config(config: Any) -> Dict[str, Any]:
    """トップレベルの構造だけを検証する。

    中身（各行列・各ステップ）の検証は io.load_matrices / operations.build_operations が行う。

    Raises:
        ValueError: テーブル/オブジェクトでない、未知のキーがある、
            matrices がテーブルでない、operations が配列でない場合。
    """

    if not isinstance(config, Mapping):
        raise ValueError("設定のトップレベルはテーブル/オブジェクトである必要があります。")
    unknown = sorted(set(config) - TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"設定に未知のトップレベルキーがあります: {unknown}")
    if "matrices" in config and not isinstance(config["matrices"], Mapping):
        raise ValueError("matrices はテーブル/オブジェクトである必要があります。")
    if "operations" in config and not isinstance(config["operations"], list):
        raise ValueError("operations は配列である必要があります。")
    return dict(config)


def load_config(path: Path) -> Dict[str, Any]:
    """設定ファイルを読み込み、構造を検証してから辞書として返す。

    Args:
        path: 設定ファイルへのパス。拡張子（大文字小文字は問わない）でフォーマットを判定する。

    Returns:
        設定内容を表す辞書。

    Raises:
        FileNotFoundError: 指定パスが存在しない場合。
        ValueError: 対応していない拡張子、またはトップレベルの構造が不正な場合。
        json.JSONDecodeError / tomllib.TOMLDecodeError: パースに失敗した場合。
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        supported = ", ".join(sorted(_READERS))
        raise ValueError(f"Unsupported config format: {path.suffix} (supported: {supported})")

    # どちらの形式もバイナリで開き、文字コードの扱いはリーダ側に任せる。
    with path.open("rb") as handle:
        return check_config(reader(handle))
