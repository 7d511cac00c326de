"""型定義。

行列要素は「四則演算ができる値」であれば何でもよい（int / float / Fraction / numpy スカラー等）。
要素型を Protocol で縛ると Fraction や Decimal が弾かれやすいため、ここでは Any としておく。
"""

from typing import Any, Tuple

# Scalar:
# - 行列の要素、およびスカラー演算の右辺。
# - 演算子が定義されていれば型は問わない。
Scalar = Any

# Position:
# - (行, 列) の 0-based 添字。
Position = Tuple[int, int]
