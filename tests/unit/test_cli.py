from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt
import pytest

from magbasin import cli
from magbasin.config import load_config


def _write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "run.toml"
    path.write_text(body, encoding="utf-8")
    return path


def test_config_show_prints_loadable_toml(tmp_path: Path, capsys):
    code = cli.main(["config", "show"])
    captured = capsys.readouterr()
    assert code == 0
    assert "[system]" in captured.out
    assert "[[system.attractors]]" in captured.out
    assert 'path = "fractal.png"' in captured.out

    # what is printed loads back to the same configuration
    cfg = load_config(_write_config(tmp_path, captured.out))
    assert cfg.system.length == 10.0
    assert len(cfg.system.attractors) == 3
    assert cfg.classifier.max_trials == 1000


def test_classify_single_point(capsys):
    code = cli.main(["classify", "0.001", "0.001", "--no-jit"])
    captured = capsys.readouterr()
    assert code == 0
    assert "converge_result=" in captured.out
    assert "converge_time=" in captured.out
    assert "step_count=" in captured.out
    assert any(f"status={s}" in captured.out for s in ("CONVERGED", "BUDGET_EXHAUSTED"))


def test_classify_outside_sphere_reports_nan_status(capsys):
    code = cli.main(["classify", "11", "0", "--no-jit"])
    captured = capsys.readouterr()
    assert code == 0
    assert "status=NAN_DETECTED" in captured.out
    assert "converge_result=-2" in captured.out


def test_render_writes_png(tmp_path: Path, capsys):
    config = _write_config(tmp_path, "[classifier]\nmax_trials = 50\n")
    out = tmp_path / "images" / "basins"
    code = cli.main([
        "render", "--config", str(config), "--no-jit",
        "--resolution", "2.5", "--extent", "5.0", "--out", str(out),
        "--parallel-mode", "none",
    ])
    captured = capsys.readouterr()
    assert code == 0
    assert "integrating 16 points" in captured.out
    assert "timing:" in captured.out and " ms" in captured.out

    written = out.with_suffix(".png")
    assert written.exists()
    assert f"wrote {written}" in captured.out

    img = plt.imread(written)
    assert img.shape[:2] == (5, 5)


def test_missing_config_reports_error(tmp_path: Path, capsys):
    missing = tmp_path / "missing.toml"
    code = cli.main(["config", "show", "--config", str(missing)])
    captured = capsys.readouterr()
    assert code == 1
    assert "Config not found" in captured.err


def test_invalid_config_value_reports_error(tmp_path: Path, capsys):
    config = _write_config(tmp_path, "[system]\nlength = -1.0\n")
    code = cli.main(["classify", "0", "0", "--config", str(config), "--no-jit"])
    captured = capsys.readouterr()
    assert code == 1
    assert "[system]" in captured.err


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        cli.main(["draw"])
