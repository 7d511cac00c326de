"""flatmatrix パッケージ。

フラットな list を背後に持つ 2 次元コンテナ FlatMatrix と、その構築ヘルパを再エクスポートする。
利用者は基本的に `from flatmatrix import FlatMatrix` の形で import できる。
"""

from .matrix import FlatMatrix, from_borrowed, from_sequence, into_matrix

# __all__:
# - 公開対象を絞り、plan 実行や入出力のヘルパ（operations/io など）はサブモジュール経由にする。
__all__ = ["FlatMatrix", "from_borrowed", "from_sequence", "into_matrix"]
