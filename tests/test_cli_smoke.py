from __future__ import annotations

import json
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import main as cli_module
from main import heatmap_path
from main import main as cli_main

CONFIG_TEXT = """
[matrices.a]
data = [1, 0, 0, 1]
row_len = 2

[matrices.b]
data = [0, 1, 1, 0]
row_len = 2

[[operations]]
name = "sum"
op = "add"
left = "a"
right = "b"

[[operations]]
name = "scaled"
op = "mul"
left = "sum"
scalar = 3

[[operations]]
name = "shifted"
op = "sub"
left = "a"
scalar = 1
"""


def test_cli_writes_results() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        tmp_dir = Path(tmp)
        config_path = tmp_dir / "plan.toml"
        config_path.write_text(CONFIG_TEXT, encoding="utf-8")
        output_path = tmp_dir / "out" / "result.json"

        cli_main(["--config", str(config_path), "--output", str(output_path)])

        if not output_path.exists():
            raise AssertionError("result JSON was not written")
        payload = json.loads(output_path.read_text(encoding="utf-8"))
        results = payload["results"]
        if results["sum"] != {"data": [1, 1, 1, 1], "row_len": 2}:
            raise AssertionError(f"unexpected sum: {results['sum']}")
        if results["scaled"]["data"] != [3, 3, 3, 3]:
            raise AssertionError(f"unexpected scaled: {results['scaled']}")
        if results["shifted"]["data"] != [0, -1, -1, 0]:
            raise AssertionError(f"unexpected shifted: {results['shifted']}")
        if payload["history"]["name"] != ["sum", "scaled", "shifted"]:
            raise AssertionError(f"unexpected history: {payload['history']}")


def test_heatmap_path_stays_in_plot_dir() -> None:
    plot_dir = Path("plots")
    if heatmap_path(plot_dir, "sum") != plot_dir / "sum.png":
        raise AssertionError(f"unexpected path: {heatmap_path(plot_dir, 'sum')}")
    escaped = heatmap_path(plot_dir, "../a b")
    if escaped != plot_dir / "a_b.png":
        raise AssertionError(f"step name escaped the plot dir: {escaped}")
    if heatmap_path(plot_dir, "//") != plot_dir / "result.png":
        raise AssertionError("empty name should fall back to result.png")


def test_cli_plots_next_to_output() -> None:
    if cli_module.plt is None:
        # matplotlib は任意依存。
        return
    with tempfile.TemporaryDirectory() as tmp:
        tmp_dir = Path(tmp)
        config_path = tmp_dir / "plan.toml"
        config_path.write_text(CONFIG_TEXT, encoding="utf-8")
        output_path = tmp_dir / "out" / "result.json"

        cli_main(["--config", str(config_path), "--output", str(output_path), "--plot"])

        for name in ("sum", "scaled", "shifted"):
            if not (output_path.parent / f"{name}.png").exists():
                raise AssertionError(f"heatmap for {name} not written next to the output")


def test_cli_missing_config() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        try:
            cli_main(["--config", str(Path(tmp) / "missing.toml")])
        except FileNotFoundError:
            return
    raise AssertionError("missing config should raise FileNotFoundError")


def main() -> None:
    test_cli_writes_results()
    test_heatmap_path_stays_in_plot_dir()
    test_cli_plots_next_to_output()
    test_cli_missing_config()
    print("OK: CLI smoke test passed")


if __name__ == "__main__":
    main()
