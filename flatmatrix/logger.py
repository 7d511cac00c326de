"""ロギング用のユーティリティ。

方針:
    - ライブラリ側は logging.getLogger(__name__) で DEBUG ログを出すだけにする。
      ハンドラの設定は setup_logging を呼ぶ外側（main 等）の責務。
    - WandB は任意依存。未インストールでも計算自体は動作させる。
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """flatmatrix 名前空間のロガーを設定する。

    複数回呼んでもハンドラが重複しないよう、既存のハンドラは外してから付け直す。

    Args:
        level: ログレベル（logging.DEBUG など）。
        log_file: 指定した場合はファイルにも書き出す。

    Returns:
        設定済みの "flatmatrix" ロガー。
    """

    logger = logging.getLogger("flatmatrix")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT, datefmt="%H:%M:%S")

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def _import_wandb():
    try:
        import importlib

        return importlib.import_module("wandb")
    except Exception as exc:  # noqa: BLE001 - 任意依存のため広めに捕捉
        raise RuntimeError(
            "wandb がインストールされていません。"
            " `pip install wandb` を実行するか、ロギングを無効化してください。"
        ) from exc


def wandb_available() -> bool:
    """wandb が利用可能かを返す。"""

    try:
        _import_wandb()
        return True
    except RuntimeError:
        return False


@dataclass
class WandBLogger:
    """plan の実行結果を WandB へ送るクラス。"""

    project: str
    entity: Optional[str] = None
    name: Optional[str] = None
    tags: Optional[Iterable[str]] = None
    enabled: bool = True
    _run: Any = field(default=None, init=False, repr=False)

    def start_run(self, config: Optional[Dict[str, Any]] = None) -> None:
        """WandB run を開始する。"""

        if not self.enabled:
            return
        wandb = _import_wandb()
        self._run = wandb.init(
            project=self.project,
            entity=self.entity,
            name=self.name,
            tags=list(self.tags) if self.tags else None,
            config=config,
        )

    def log_history(self, history: Dict[str, Any], prefix: str = "plan") -> None:
        """run_plan の履歴をステップごとに記録する。

        数値でない系列（演算名や形状）は WandB のグラフにならないため送らない。
        """

        if not self.enabled:
            return
        wandb = _import_wandb()

        series_keys = [
            key
            for key, values in history.items()
            if isinstance(values, (list, tuple))
            and all(isinstance(value, (int, float)) for value in values)
        ]
        if not series_keys:
            return
        n_steps = max(len(history[key]) for key in series_keys)
        for step in range(n_steps):
            payload = {
                f"{prefix}/{key}": history[key][step]
                for key in series_keys
                if step < len(history[key])
            }
            if payload:
                wandb.log(payload, step=step)

    def log_metrics(self, metrics: Dict[str, Any], prefix: Optional[str] = None) -> None:
        """結果の要約（形状や合計値など）を記録する。"""

        if not self.enabled:
            return
        wandb = _import_wandb()
        if prefix:
            payload = {f"{prefix}/{key}": value for key, value in metrics.items()}
        else:
            payload = dict(metrics)
        wandb.log(payload)

    def finish(self) -> None:
        """WandB run を終了する。"""

        if not self.enabled:
            return
        wandb = _import_wandb()
        wandb.finish()
        self._run = None
