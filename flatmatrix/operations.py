"""行列演算の手順（plan）を設定から組み立てて順に実行する。

1 ステップは MatrixOperation で表し、設定の [[operations]] 1 件に対応する。

config の想定:
    - "name": 結果の名前（後続ステップから left/right で参照できる）
    - "op": 演算名（add/sub/mul/hadamard/matmul/div/floordiv/rem/transpose/neg）
    - "left": 左辺の行列名
    - "right": 右辺の行列名（"scalar" とどちらか一方）
    - "scalar": 右辺のスカラー
"""

from __future__ import annotations

import logging
import operator
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from tqdm.auto import tqdm

from .matrix import FlatMatrix

logger = logging.getLogger(__name__)

# 二項演算: 右辺は行列またはスカラー。
_BINARY_OPS: Dict[str, Callable[[Any, Any], Any]] = {
    "add": operator.add,
    "sub": operator.sub,
    "mul": operator.mul,
    "div": operator.truediv,
    "floordiv": operator.floordiv,
    "rem": operator.mod,
}

# 行列同士でのみ意味を持つ演算。
_MATRIX_OPS: Dict[str, Callable[[FlatMatrix, FlatMatrix], FlatMatrix]] = {
    "hadamard": FlatMatrix.hadamard,
    "matmul": FlatMatrix.matmul,
}

# 単項演算: 右辺を取らない。
_UNARY_OPS: Dict[str, Callable[[FlatMatrix], FlatMatrix]] = {
    "transpose": FlatMatrix.transposed,
    "neg": operator.neg,
}

SUPPORTED_OPS = tuple(sorted({*_BINARY_OPS, *_MATRIX_OPS, *_UNARY_OPS}))


class MatrixOperation:
    """plan の 1 ステップ。"""

    def __init__(self, config: Mapping[str, Any]) -> None:
        self.config = dict(config)
        self.op = self._normalize_op(self.config.get("op"))
        self.left = self.config.get("left")
        self.right = self.config.get("right")
        self.scalar = self.config.get("scalar")
        self.name = str(self.config.get("name") or self._default_name())
        self._validate()

    def apply(self, matrices: Mapping[str, FlatMatrix]) -> FlatMatrix:
        """名前解決をしてから演算を実行し、結果の行列を返す。

        Raises:
            KeyError: left/right の名前が matrices に無い場合。
            ValueError / IndexError / ZeroDivisionError: 演算そのものが投げる例外。
        """
        lhs = self._resolve(matrices, self.left)

        if self.op in _UNARY_OPS:
            return _UNARY_OPS[self.op](lhs)

        rhs = self._resolve(matrices, self.right) if self.right is not None else self.scalar
        if self.op in _MATRIX_OPS:
            return _MATRIX_OPS[self.op](lhs, rhs)
        return _BINARY_OPS[self.op](lhs, rhs)

    def describe(self) -> str:
        if self.op in _UNARY_OPS:
            return f"{self.name} = {self.op}({self.left})"
        rhs = self.right if self.right is not None else repr(self.scalar)
        return f"{self.name} = {self.op}({self.left}, {rhs})"

    def _default_name(self) -> str:
        return f"{self.op}_{self.left}"

    def _validate(self) -> None:
        if self.op not in SUPPORTED_OPS:
            raise ValueError(f"未知の op が指定されました: {self.op!r}")
        if self.left is None:
            raise ValueError(f"{self.op}: left が指定されていません。")

        if self.op in _UNARY_OPS:
            if self.right is not None or self.scalar is not None:
                raise ValueError(f"{self.op} は right/scalar を取りません。")
            return

        has_right = self.right is not None
        has_scalar = self.scalar is not None
        if has_right == has_scalar:
            raise ValueError(f"{self.op}: right と scalar のどちらか一方を指定してください。")
        if self.op in _MATRIX_OPS and has_scalar:
            raise ValueError(f"{self.op} の右辺は行列である必要があります。")

    def _normalize_op(self, op: Any) -> str:
        if op is None:
            raise ValueError("op が指定されていません。")
        return str(op).strip().lower().replace("-", "_")

    @staticmethod
    def _resolve(matrices: Mapping[str, FlatMatrix], name: Any) -> FlatMatrix:
        try:
            return matrices[name]
        except KeyError:
            raise KeyError(f"行列 {name!r} が定義されていません。") from None


def build_operations(config: Mapping[str, Any]) -> List[MatrixOperation]:
    """設定の operations 配列から MatrixOperation のリストを作る。"""

    entries = config.get("operations") or []
    if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
        raise ValueError("operations は配列である必要があります。")
    return [MatrixOperation(entry) for entry in entries]


def _check_step_names(
    matrices: Mapping[str, FlatMatrix], operations: Sequence[MatrixOperation]
) -> None:
    # 結果は name で登録されるため、重複や入力名との衝突は上書きとして消えてしまう。
    seen: Dict[str, int] = {}
    for index, step in enumerate(operations):
        if step.name in matrices:
            raise ValueError(
                f"ステップ {index} の name {step.name!r} は入力の行列名と衝突しています。"
            )
        if step.name in seen:
            raise ValueError(
                f"ステップ {index} の name {step.name!r} はステップ {seen[step.name]} と重複しています。"
                " name を明示してください。"
            )
        seen[step.name] = index


def run_plan(
    matrices: Mapping[str, FlatMatrix],
    operations: Sequence[MatrixOperation],
    progress: bool = False,
) -> Tuple[Dict[str, FlatMatrix], Dict[str, List[Any]]]:
    """演算手順を先頭から順に実行する。

    各ステップの結果は name で登録され、後続ステップの left/right から参照できる。
    入力の matrices 自体は変更しない。
    name の重複・入力名との衝突は実行前に ValueError とする。

    Args:
        matrices: 初期の名前 -> 行列。
        operations: 実行するステップ列。
        progress: True なら tqdm で進捗バーを表示する。

    Returns:
        (results, history)
        - results: ステップ名 -> 結果行列（実行順）
        - history: "name"/"op"/"shape"/"seconds" の各リスト
    """
    _check_step_names(matrices, operations)

    scope: Dict[str, FlatMatrix] = dict(matrices)
    results: Dict[str, FlatMatrix] = {}
    history: Dict[str, List[Any]] = {"name": [], "op": [], "shape": [], "seconds": []}

    iterator = tqdm(operations, desc="plan", disable=not progress)
    for step in iterator:
        start = time.perf_counter()
        result = step.apply(scope)
        elapsed = time.perf_counter() - start

        scope[step.name] = result
        results[step.name] = result

        shape: Optional[List[int]]
        shape = list(result.shape) if result.is_rectangular else None
        history["name"].append(step.name)
        history["op"].append(step.op)
        history["shape"].append(shape)
        history["seconds"].append(elapsed)
        logger.debug("%s -> shape=%s (%.6fs)", step.describe(), shape, elapsed)

    return results, history
