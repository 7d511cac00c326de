"""1 次元のフラットな列を (行, 列) で参照できるようにした 2 次元コンテナ。

FlatMatrix は list を 1 本だけ保持し、行数 row_len を属性として持つ。
列数は要素数 // row_len で導出するため、割り切れない場合は末尾が黙って切り捨てられる
（is_rectangular / validate で検出できる）。

添字の対応:
    (i, j) -> i * column_len() + j （行優先 / row-major）

演算の方針:
    - 行列同士の + - * / // % は要素ごと（Hadamard）。要素数が異なれば ValueError。
    - 行列とスカラーの演算は全要素へ写像する。
    - 真の行列積は matmul / `@` として別名で提供する。
    - ゼロ除算などの例外は要素型が投げるものをそのまま伝播させる（握りつぶさない）。
"""

from __future__ import annotations

import operator
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from .types import Position, Scalar

# スカラーとして扱わない（行列と取り違えやすい）オペランド。
_SEQUENCE_OPERANDS = (list, tuple, np.ndarray)


def _check_row_len(row_len: Any) -> int:
    if isinstance(row_len, bool):
        raise TypeError("row_len は整数である必要があります。")
    try:
        value = operator.index(row_len)
    except TypeError as exc:
        raise TypeError(
            f"row_len は整数である必要があります: {type(row_len).__name__}"
        ) from exc
    if value < 0:
        raise ValueError(f"row_len は 0 以上である必要があります: {value}")
    return value


def _as_index(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("添字は整数である必要があります。")
    try:
        return operator.index(value)
    except TypeError as exc:
        raise TypeError(
            f"添字は整数である必要があります: {type(value).__name__}"
        ) from exc


class FlatMatrix:
    """フラットな list を背後に持つ行列コンテナ。

    Attributes:
        elements: 背後の list そのもの（コピーではない）。
        n_rows: 行数（row_len() と同じ）。
        n_cols: 列数（column_len() と同じ）。
    """

    # numpy スカラー/配列が左辺に来たときに、こちらの反射演算子へ委譲させる。
    __array_ufunc__ = None

    def __init__(self, elements: Iterable[Scalar], row_len: int) -> None:
        # list はコピーせずに保持する（from_sequence の所有権移動に相当）。
        # tuple や ndarray のまま持つと書き込みや比較が壊れるため list に揃える。
        if isinstance(elements, np.ndarray):
            elements = elements.ravel(order="C").tolist()
        elif not isinstance(elements, list):
            elements = list(elements)
        self._elements = elements
        self._row_len = _check_row_len(row_len)

    # ------------------------------------------------------------------
    # 構築
    # ------------------------------------------------------------------
    @classmethod
    def from_sequence(cls, data: Iterable[Scalar], row_len: int) -> "FlatMatrix":
        """既存の列を引き取って行列を作る。

        data が list の場合はコピーせずそのまま保持するため、呼び出し側の list と
        要素を共有する。list 以外（tuple や ndarray、ジェネレータ）は __init__ で list 化する。
        """
        return cls(data, row_len)

    @classmethod
    def from_borrowed(cls, data: Iterable[Scalar], row_len: int) -> "FlatMatrix":
        """列の要素を新しい list にコピーして行列を作る。"""
        return cls(list(data), row_len)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FlatMatrix":
        """辞書（設定）から行列を構築する。

        Args:
            config: {"data": [...], "row_len": n} 形式の辞書。

        Returns:
            要素をコピーして構築した FlatMatrix。

        Raises:
            ValueError: data / row_len が無い、または余計なキーがある場合。
        """
        config_dict = dict(config)
        missing = [key for key in ("data", "row_len") if key not in config_dict]
        if missing:
            raise ValueError(f"行列の設定に必須キーがありません: {missing}")
        data = config_dict.pop("data")
        row_len = config_dict.pop("row_len")
        if config_dict:
            raise ValueError(f"行列の設定に未知のキーがあります: {sorted(config_dict)}")
        return cls.from_borrowed(data, row_len)

    @classmethod
    def from_numpy(cls, array: Any) -> "FlatMatrix":
        """2 次元配列（1 次元なら 1 行とみなす）から行優先で行列を作る。"""
        arr = np.asarray(array)
        if arr.ndim == 1:
            arr = arr.reshape(1, -1)
        elif arr.ndim != 2:
            raise ValueError(f"配列は 1 次元または 2 次元である必要があります: ndim={arr.ndim}")
        # __init__ が ravel + tolist で numpy スカラーを Python の値へ戻す。
        return cls(arr, arr.shape[0])

    @classmethod
    def filled(cls, n_rows: int, n_cols: int, value: Scalar) -> "FlatMatrix":
        n_cols = _check_row_len(n_cols)
        return cls([value] * (_check_row_len(n_rows) * n_cols), n_rows)

    @classmethod
    def identity(cls, n: int, one: Scalar = 1, zero: Scalar = 0) -> "FlatMatrix":
        mat = cls.filled(n, n, zero)
        for i in range(mat.n_rows):
            mat[i, i] = one
        return mat

    # ------------------------------------------------------------------
    # 形状
    # ------------------------------------------------------------------
    def row_len(self) -> int:
        """行数を返す（保持している値そのまま）。"""
        return self._row_len

    def column_len(self) -> int:
        """列数 len(elements) // row_len() を返す。

        割り切れない場合は切り捨てる。row_len() が 0 のときは ZeroDivisionError。
        """
        if self._row_len == 0:
            raise ZeroDivisionError("row_len が 0 のため列数を計算できません。")
        return len(self._elements) // self._row_len

    @property
    def n_rows(self) -> int:
        return self.row_len()

    @property
    def n_cols(self) -> int:
        return self.column_len()

    @property
    def shape(self) -> Tuple[int, int]:
        return self.row_len(), self.column_len()

    @property
    def is_rectangular(self) -> bool:
        """要素数が row_len で割り切れるか（末尾の切り捨てが起きていないか）。"""
        return self._row_len > 0 and len(self._elements) % self._row_len == 0

    def validate(self) -> None:
        """行列全体が (行数 x 列数) の格子に収まっていることを検証する。

        Raises:
            ZeroDivisionError: row_len が 0 の場合。
            ValueError: 要素数が row_len で割り切れない場合。
        """
        n_cols = self.column_len()
        if n_cols * self._row_len != len(self._elements):
            raise ValueError(
                f"要素数 {len(self._elements)} は row_len={self._row_len} で割り切れません。"
            )

    @property
    def elements(self) -> List[Scalar]:
        return self._elements

    # ------------------------------------------------------------------
    # 添字アクセス
    # ------------------------------------------------------------------
    def _flat_index(self, position: Position) -> int:
        if not isinstance(position, tuple) or len(position) != 2:
            raise TypeError("添字は (行, 列) の 2 要素タプルである必要があります。")
        i = _as_index(position[0])
        j = _as_index(position[1])
        n_cols = self.column_len()
        # 負の添字は折り返さずに範囲外として扱う。
        if not (0 <= i < self._row_len and 0 <= j < n_cols):
            raise IndexError(
                f"添字 {(i, j)} は形状 {(self._row_len, n_cols)} の範囲外です。"
            )
        return i * n_cols + j

    def get(self, i: int, j: int) -> Scalar:
        return self._elements[self._flat_index((i, j))]

    def set(self, i: int, j: int, value: Scalar) -> None:
        self._elements[self._flat_index((i, j))] = value

    def __getitem__(self, position: Position) -> Scalar:
        return self._elements[self._flat_index(position)]

    def __setitem__(self, position: Position, value: Scalar) -> None:
        self._elements[self._flat_index(position)] = value

    def swap(self, a: Position, b: Position) -> None:
        """2 つのセルの値をその場で入れ替える。範囲外は IndexError。"""
        a_index = self._flat_index(a)
        b_index = self._flat_index(b)
        elements = self._elements
        elements[a_index], elements[b_index] = elements[b_index], elements[a_index]

    # ------------------------------------------------------------------
    # 列としての振る舞い
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[Scalar]:
        return iter(self._elements)

    def __contains__(self, value: object) -> bool:
        return value in self._elements

    def to_list(self) -> List[Scalar]:
        return list(self._elements)

    def rows(self) -> List[List[Scalar]]:
        n_rows, n_cols = self.shape
        return [self._elements[i * n_cols : (i + 1) * n_cols] for i in range(n_rows)]

    def copy(self) -> "FlatMatrix":
        return FlatMatrix(list(self._elements), self._row_len)

    def to_numpy(self, dtype: Optional[Any] = None) -> np.ndarray:
        """形状 (n_rows, n_cols) の NumPy 配列へ変換する。"""
        self.validate()
        return np.asarray(self._elements, dtype=dtype).reshape(self.shape)

    # ------------------------------------------------------------------
    # 構造変換
    # ------------------------------------------------------------------
    def map(self, func: Callable[[Scalar], Scalar]) -> "FlatMatrix":
        """各要素に func を適用した新しい行列を返す（row_len は維持）。"""
        return FlatMatrix([func(value) for value in self._elements], self._row_len)

    def transposed(self) -> "FlatMatrix":
        self.validate()
        n_rows, n_cols = self.shape
        elements = self._elements
        transposed = [
            elements[i * n_cols + j] for j in range(n_cols) for i in range(n_rows)
        ]
        return FlatMatrix(transposed, n_cols)

    def hadamard(self, other: "FlatMatrix") -> "FlatMatrix":
        """要素ごとの積（Hadamard 積）。`*` と同じ。"""
        if not isinstance(other, FlatMatrix):
            raise TypeError("hadamard の引数は FlatMatrix である必要があります。")
        return self._zip_map(other, operator.mul)

    def matmul(self, other: "FlatMatrix") -> "FlatMatrix":
        """行×列の通常の行列積を返す。

        Args:
            other: 右辺の行列。self.n_cols == other.n_rows であること。

        Returns:
            形状 (self.n_rows, other.n_cols) の新しい行列。

        Raises:
            TypeError: other が FlatMatrix でない場合。
            ValueError: 内側の次元が一致しない、またはどちらかが矩形でない場合。
        """
        if not isinstance(other, FlatMatrix):
            raise TypeError("matmul の引数は FlatMatrix である必要があります。")
        self.validate()
        other.validate()
        n_rows, inner = self.shape
        other_rows, n_cols = other.shape
        if inner != other_rows:
            raise ValueError(
                f"行列積の形状が不整合です: {self.shape} @ {other.shape}"
            )

        lhs = self._elements
        rhs = other._elements
        product = []
        for i in range(n_rows):
            row = lhs[i * inner : (i + 1) * inner]
            for j in range(n_cols):
                column = rhs[j::n_cols]
                product.append(sum(a * b for a, b in zip(row, column)))
        return FlatMatrix(product, n_rows)

    # ------------------------------------------------------------------
    # 要素ごとの演算
    # ------------------------------------------------------------------
    def _check_same_length(self, other: "FlatMatrix") -> None:
        if len(self._elements) != len(other._elements):
            raise ValueError(
                "要素ごとの演算には同じ要素数の行列が必要です: "
                f"{len(self._elements)} != {len(other._elements)}"
            )

    def _zip_map(
        self, other: "FlatMatrix", op: Callable[[Scalar, Scalar], Scalar]
    ) -> "FlatMatrix":
        self._check_same_length(other)
        combined = [op(a, b) for a, b in zip(self._elements, other._elements)]
        # 結果は左辺の row_len を引き継ぐ。
        return FlatMatrix(combined, self._row_len)

    def _binary(self, other: Any, op: Callable[[Scalar, Scalar], Scalar]) -> Any:
        if isinstance(other, FlatMatrix):
            return self._zip_map(other, op)
        if isinstance(other, _SEQUENCE_OPERANDS):
            return NotImplemented
        return self.map(lambda value: op(value, other))

    def _reflected(self, other: Any, op: Callable[[Scalar, Scalar], Scalar]) -> Any:
        if isinstance(other, _SEQUENCE_OPERANDS):
            return NotImplemented
        return self.map(lambda value: op(other, value))

    def _inplace(self, other: Any, op: Callable[[Scalar, Scalar], Scalar]) -> Any:
        if isinstance(other, FlatMatrix):
            self._check_same_length(other)
            updated = [op(a, b) for a, b in zip(self._elements, other._elements)]
        elif isinstance(other, _SEQUENCE_OPERANDS):
            return NotImplemented
        else:
            updated = [op(value, other) for value in self._elements]
        # 途中で例外が出ても中途半端に書き換わらないよう、計算後にまとめて差し替える。
        # スライス代入なので list の同一性（共有している呼び出し側）は保たれる。
        self._elements[:] = updated
        return self

    def __add__(self, other: Any) -> "FlatMatrix":
        return self._binary(other, operator.add)

    def __sub__(self, other: Any) -> "FlatMatrix":
        return self._binary(other, operator.sub)

    def __mul__(self, other: Any) -> "FlatMatrix":
        return self._binary(other, operator.mul)

    def __truediv__(self, other: Any) -> "FlatMatrix":
        return self._binary(other, operator.truediv)

    def __floordiv__(self, other: Any) -> "FlatMatrix":
        return self._binary(other, operator.floordiv)

    def __mod__(self, other: Any) -> "FlatMatrix":
        return self._binary(other, operator.mod)

    def __radd__(self, other: Any) -> "FlatMatrix":
        return self._reflected(other, operator.add)

    def __rsub__(self, other: Any) -> "FlatMatrix":
        return self._reflected(other, operator.sub)

    def __rmul__(self, other: Any) -> "FlatMatrix":
        return self._reflected(other, operator.mul)

    def __iadd__(self, other: Any) -> "FlatMatrix":
        return self._inplace(other, operator.add)

    def __isub__(self, other: Any) -> "FlatMatrix":
        return self._inplace(other, operator.sub)

    def __imul__(self, other: Any) -> "FlatMatrix":
        return self._inplace(other, operator.mul)

    def __itruediv__(self, other: Any) -> "FlatMatrix":
        return self._inplace(other, operator.truediv)

    def __ifloordiv__(self, other: Any) -> "FlatMatrix":
        return self._inplace(other, operator.floordiv)

    def __imod__(self, other: Any) -> "FlatMatrix":
        return self._inplace(other, operator.mod)

    def __matmul__(self, other: Any) -> "FlatMatrix":
        if not isinstance(other, FlatMatrix):
            return NotImplemented
        return self.matmul(other)

    def __neg__(self) -> "FlatMatrix":
        return self.map(operator.neg)

    def __abs__(self) -> "FlatMatrix":
        return self.map(abs)

    # ------------------------------------------------------------------
    # 比較と表示
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlatMatrix):
            return NotImplemented
        return self._row_len == other._row_len and self._elements == other._elements

    # 可変オブジェクトなのでハッシュ不可。
    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        # デバッグ表示はフラットな要素列のみ（形状は含めない）。
        return repr(self._elements)

    def __str__(self) -> str:
        if not self.is_rectangular:
            return repr(self._elements)
        return "\n".join(" ".join(str(value) for value in row) for row in self.rows())


def from_sequence(data: Iterable[Scalar], row_len: int) -> FlatMatrix:
    """FlatMatrix.from_sequence の関数版。"""
    return FlatMatrix.from_sequence(data, row_len)


def from_borrowed(data: Iterable[Scalar], row_len: int) -> FlatMatrix:
    """FlatMatrix.from_borrowed の関数版。"""
    return FlatMatrix.from_borrowed(data, row_len)


def into_matrix(data: Iterable[Scalar], row_len: int) -> FlatMatrix:
    # 元の列は変更しない（常にコピー）。
    return FlatMatrix.from_borrowed(data, row_len)
