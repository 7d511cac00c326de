"""CLI エントリポイント。

目的:
    設定ファイル（TOML/JSON）に書いた行列と演算手順（operations）を読み込み、
    順に実行して結果を表示・保存するためのコマンドライン実行口を提供する。

想定される例外:
    - 設定ファイルが存在しない: FileNotFoundError
    - JSON/TOML の構文エラー: パーサ由来の例外
    - 形状不整合・範囲外・ゼロ除算: 演算が投げる例外をそのまま伝播する
"""

import argparse
import json
import logging
import os
import re
from pathlib import Path
from typing import Optional, Sequence

try:
    import matplotlib.pyplot as plt
except ImportError:
    plt = None

from flatmatrix.config import load_config
from flatmatrix.io import load_matrices, matrix_to_frame
from flatmatrix.logger import WandBLogger, setup_logging, wandb_available
from flatmatrix.operations import build_operations, run_plan

logger = logging.getLogger("flatmatrix.main")


def heatmap_path(plot_dir: Path, name: str) -> Path:
    """ステップ名からヒートマップの保存先を作る（ディレクトリ外へ出ないよう名前を整える）。"""

    safe_name = re.sub(r"[^0-9A-Za-z_.-]+", "_", name).strip("._") or "result"
    return plot_dir / f"{safe_name}.png"


def main(argv: Optional[Sequence[str]] = None) -> None:
    """コマンドライン引数を解釈し、演算手順を実行する。

    Args:
        argv: 引数リスト。None の場合は `sys.argv` を argparse が参照する。
    """

    parser = argparse.ArgumentParser(description="flatmatrix plan runner")

    # --config 引数:
    # - matrices と operations を定義した設定ファイル
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.toml"),
        help="Path to a TOML or JSON config file.",
    )

    # --output 引数:
    # - 結果 JSON の出力先（指定がない場合は出力しない）
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write result JSON (optional).",
    )

    # --plot 引数:
    # - 各結果のヒートマップを保存するか
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Save heatmaps of the results (requires matplotlib).",
    )
    parser.add_argument(
        "--plot-dir",
        type=Path,
        default=None,
        help="Directory for heatmaps (default: next to --output, else the current directory).",
    )

    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while running the operations.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    # 設定を読み込む。ファイル不在・拡張子非対応・パース失敗は例外として伝播する。
    config = load_config(args.config)

    # WandB ログの準備（任意）。
    wandb_logger = None
    wandb_project = os.getenv("WANDB_PROJECT")
    wandb_enabled = os.getenv("WANDB_ENABLED", "").lower() in {"1", "true", "yes"}
    if wandb_project or wandb_enabled:
        if not wandb_project:
            wandb_project = "flatmatrix"
        if wandb_available():
            wandb_logger = WandBLogger(project=wandb_project, name="flatmatrix-run")
            wandb_logger.start_run(config={"config": config})
        else:
            logger.warning("WandB が利用できないためロギングをスキップします。")

    # CSV の相対パスは設定ファイルのあるディレクトリ基準で解決する。
    matrices = load_matrices(config, base_dir=args.config.parent)
    operations = build_operations(config)
    logger.info(
        "Loaded %d matrices and %d operations from %s",
        len(matrices),
        len(operations),
        args.config,
    )

    results, history = run_plan(matrices, operations, progress=args.progress)

    for name, result in results.items():
        print(f"\n=== {name} ===")
        if result.is_rectangular:
            print(matrix_to_frame(result))
        else:
            # 行列として解釈できない（row_len で割り切れない）場合はフラット表示。
            print(repr(result))

    if args.plot:
        if plt is None:
            logger.warning("matplotlib が利用できないためプロットをスキップします。")
        else:
            plot_dir = args.plot_dir
            if plot_dir is None:
                plot_dir = args.output.parent if args.output is not None else Path(".")
            plot_dir.mkdir(parents=True, exist_ok=True)
            for name, result in results.items():
                if not result.is_rectangular:
                    continue
                fig, ax = plt.subplots(figsize=(4, 4))
                image = ax.imshow(result.to_numpy(dtype=float), cmap="viridis")
                fig.colorbar(image, ax=ax)
                ax.set_title(name)
                output_path = heatmap_path(plot_dir, name)
                fig.tight_layout()
                fig.savefig(output_path, dpi=150)
                plt.close(fig)
                logger.info("Saved heatmap to %s", output_path)

    if args.output is not None:
        output_path = args.output
        output_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "config_path": str(args.config),
            "results": {
                name: {"data": result.to_list(), "row_len": result.row_len()}
                for name, result in results.items()
            },
            "history": history,
        }
        with output_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        logger.info("Saved result JSON to %s", output_path)

    if wandb_logger is not None:
        wandb_logger.log_history(history)
        wandb_logger.log_metrics(
            {
                "n_operations": len(operations),
                "total_elements": sum(len(result) for result in results.values()),
            },
            prefix="summary",
        )
        wandb_logger.finish()


if __name__ == "__main__":
    # 直接実行時のみ main() を呼び出す（import された場合に副作用を起こさない）。
    main()
