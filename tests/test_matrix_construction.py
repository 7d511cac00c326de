from __future__ import annotations

import sys
from fractions import Fraction
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from flatmatrix import FlatMatrix, from_borrowed, from_sequence, into_matrix


def assert_raises(exc_type, func, *args, **kwargs):
    try:
        func(*args, **kwargs)
    except exc_type as exc:
        return exc
    raise AssertionError(f"{getattr(func, '__name__', func)} did not raise {exc_type.__name__}")


def test_owned_and_borrowed_are_equal() -> None:
    m1 = from_sequence([1, 2, 3, 4], 2)
    m2 = from_borrowed((1, 2, 3, 4), 2)
    if m1 != m2:
        raise AssertionError(f"construction paths differ: {m1!r} vs {m2!r}")
    if into_matrix([1, 2, 3, 4], 2) != m1:
        raise AssertionError("into_matrix differs from from_sequence")


def test_from_sequence_keeps_list_identity() -> None:
    data = [1, 2, 3, 4]
    m = FlatMatrix.from_sequence(data, 2)
    if m.elements is not data:
        raise AssertionError("from_sequence copied the list")
    m[0, 0] = 9
    if data[0] != 9:
        raise AssertionError("write through matrix not visible in shared list")


def test_from_borrowed_copies() -> None:
    data = [1, 2, 3, 4]
    m = FlatMatrix.from_borrowed(data, 2)
    m[1, 1] = 0
    if data != [1, 2, 3, 4]:
        raise AssertionError(f"borrowed source was mutated: {data}")


def test_shape_and_index_mapping() -> None:
    m = from_sequence(list(range(6)), 2)
    if (m.row_len(), m.column_len()) != (2, 3):
        raise AssertionError(f"unexpected extents: {(m.row_len(), m.column_len())}")
    if m.shape != (2, 3) or m.n_rows != 2 or m.n_cols != 3:
        raise AssertionError(f"unexpected shape: {m.shape}")
    # (i, j) -> i * column_len + j
    for i in range(2):
        for j in range(3):
            if m[i, j] != i * 3 + j or m.get(i, j) != i * 3 + j:
                raise AssertionError(f"bad mapping at {(i, j)}")
    m.set(1, 2, 42)
    if m.elements[5] != 42:
        raise AssertionError("set wrote to the wrong flat index")


def test_constructor_normalises_storage() -> None:
    from_tuple = FlatMatrix((1, 2, 3, 4), 2)
    if not isinstance(from_tuple.elements, list):
        raise AssertionError(f"tuple storage kept: {type(from_tuple.elements)}")
    from_tuple += 1
    from_tuple[0, 0] = 9
    if from_tuple != from_sequence([9, 3, 4, 5], 2):
        raise AssertionError(f"tuple-backed matrix not writable: {from_tuple!r}")

    from_array = FlatMatrix(np.array([1, 2, 3, 4]), 2)
    if not all(type(value) is int for value in from_array):
        raise AssertionError("ndarray storage left numpy scalars in the list")
    if from_array != from_sequence([1, 2, 3, 4], 2):
        raise AssertionError(f"ndarray-backed matrix compares wrong: {from_array!r}")
    from_array += from_array
    if from_array.to_list() != [2, 4, 6, 8]:
        raise AssertionError(f"ndarray-backed matrix in-place add: {from_array!r}")

    from_generator = FlatMatrix((value * 2 for value in range(4)), 2)
    if from_generator.to_list() != [0, 2, 4, 6]:
        raise AssertionError(f"generator storage mismatch: {from_generator!r}")


def test_row_len_type_checks() -> None:
    assert_raises(ValueError, FlatMatrix, [1, 2], -1)
    assert_raises(TypeError, FlatMatrix, [1, 2], 1.5)
    assert_raises(TypeError, FlatMatrix, [1, 2], True)
    m = FlatMatrix([1, 2, 3, 4], np.int64(2))
    if m.row_len() != 2 or not isinstance(m.row_len(), int):
        raise AssertionError("numpy integer row_len not normalised")


def test_from_config() -> None:
    m = FlatMatrix.from_config({"data": [1, 0, 0, 1], "row_len": 2})
    if m != from_sequence([1, 0, 0, 1], 2):
        raise AssertionError(f"from_config mismatch: {m!r}")
    assert_raises(ValueError, FlatMatrix.from_config, {"data": [1, 2]})
    assert_raises(ValueError, FlatMatrix.from_config, {"data": [1], "row_len": 1, "x": 0})


def test_numpy_round_trip() -> None:
    arr = np.arange(6).reshape(2, 3)
    m = FlatMatrix.from_numpy(arr)
    if m != from_sequence([0, 1, 2, 3, 4, 5], 2):
        raise AssertionError(f"from_numpy mismatch: {m!r}")
    if not all(type(value) is int for value in m):
        raise AssertionError("from_numpy left numpy scalars in the list")
    if not np.array_equal(m.to_numpy(), arr):
        raise AssertionError("to_numpy mismatch")
    row = FlatMatrix.from_numpy(np.array([1.0, 2.0]))
    if row.shape != (1, 2):
        raise AssertionError(f"1-D input should become one row: {row.shape}")
    assert_raises(ValueError, FlatMatrix.from_numpy, np.zeros((2, 2, 2)))


def test_filled_identity_transposed() -> None:
    eye = FlatMatrix.identity(3)
    if eye.to_list() != [1, 0, 0, 0, 1, 0, 0, 0, 1]:
        raise AssertionError(f"identity mismatch: {eye!r}")
    filled = FlatMatrix.filled(2, 3, Fraction(1, 2))
    if filled.shape != (2, 3) or set(filled) != {Fraction(1, 2)}:
        raise AssertionError(f"filled mismatch: {filled!r}")
    m = from_sequence([1, 2, 3, 4, 5, 6], 2)
    t = m.transposed()
    if t != from_sequence([1, 4, 2, 5, 3, 6], 3):
        raise AssertionError(f"transposed mismatch: {t!r}")
    if t.transposed() != m:
        raise AssertionError("double transpose is not identity")
    if not np.array_equal(t.to_numpy(), m.to_numpy().T):
        raise AssertionError("transposed disagrees with numpy")


def test_sequence_surface() -> None:
    m = from_sequence([1, 2, 3, 4], 2)
    if len(m) != 4 or 3 not in m or 7 in m:
        raise AssertionError("len/contains mismatch")
    it = iter(m)
    if list(it) != [1, 2, 3, 4] or list(it) != []:
        raise AssertionError("iterator should be single pass")
    if m.rows() != [[1, 2], [3, 4]]:
        raise AssertionError(f"rows mismatch: {m.rows()}")
    c = m.copy()
    c[0, 0] = 0
    if m[0, 0] != 1:
        raise AssertionError("copy shares storage")
    lst = m.to_list()
    lst.append(5)
    if len(m) != 4:
        raise AssertionError("to_list shares storage")


def test_equality_and_repr() -> None:
    a = from_sequence([1, 2, 3, 4], 2)
    if a == from_sequence([1, 2, 3, 4], 4):
        raise AssertionError("equality must include row_len")
    if a == [1, 2, 3, 4]:
        raise AssertionError("matrix should not equal a plain list")
    if repr(a) != "[1, 2, 3, 4]":
        raise AssertionError(f"unexpected repr: {a!r}")
    if str(a) != "1 2\n3 4":
        raise AssertionError(f"unexpected str: {str(a)!r}")
    try:
        hash(a)
    except TypeError:
        pass
    else:
        raise AssertionError("matrix should be unhashable")


def test_swap() -> None:
    m = from_sequence([1, 2, 3, 4], 2)
    m.swap((0, 0), (1, 1))
    if m.to_list() != [4, 2, 3, 1]:
        raise AssertionError(f"swap mismatch: {m!r}")
    m.swap((0, 1), (0, 1))
    if m.to_list() != [4, 2, 3, 1]:
        raise AssertionError("self swap changed the matrix")
    assert_raises(IndexError, m.swap, (0, 0), (2, 0))
    if m.to_list() != [4, 2, 3, 1]:
        raise AssertionError("failed swap mutated the matrix")


def main() -> None:
    test_owned_and_borrowed_are_equal()
    test_from_sequence_keeps_list_identity()
    test_from_borrowed_copies()
    test_constructor_normalises_storage()
    test_shape_and_index_mapping()
    test_row_len_type_checks()
    test_from_config()
    test_numpy_round_trip()
    test_filled_identity_transposed()
    test_sequence_surface()
    test_equality_and_repr()
    test_swap()
    print("OK: FlatMatrix construction/access checks passed")


if __name__ == "__main__":
    main()
