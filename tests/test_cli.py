import logging

import pandas as pd

from conftest import make_candles
from stochopt import cli

CONFIG_TEXT = """
simulation:
  capital: 1000
  exchange_fee: 0.001
space:
  k_length: [3, 5]
  k_smoothing: [1, 2]
  d_length: [2, 3]
search:
  workers: 1
  top: 4
data:
  interval: 1m
"""


def _write_inputs(tmp_path):
    candles = make_candles(40)
    frame = pd.DataFrame(
        {
            "open_time": [candle.open_time for candle in candles],
            "open": [candle.open_price for candle in candles],
            "high": [candle.high_price for candle in candles],
            "low": [candle.low_price for candle in candles],
            "close": [candle.close_price for candle in candles],
        }
    )
    csv_path = tmp_path / "candles.csv"
    frame.to_csv(csv_path, index=False)
    config_path = tmp_path / "backtest.yaml"
    config_path.write_text(CONFIG_TEXT, encoding="utf-8")
    return csv_path, config_path


def test_cli_prints_ranking(tmp_path, capsys):
    csv_path, config_path = _write_inputs(tmp_path)

    exit_code = cli.main(["--config", str(config_path), "--candles", str(csv_path)])

    assert exit_code == 0
    output = capsys.readouterr().out
    assert "k_length" in output
    assert len(output.strip().splitlines()) == 1 + 4


def test_cli_overrides_engine_and_writes_log(tmp_path, capsys):
    csv_path, config_path = _write_inputs(tmp_path)
    log_dir = tmp_path / "logs"

    exit_code = cli.main(
        [
            "--config",
            str(config_path),
            "--candles",
            str(csv_path),
            "--engine",
            "optuna",
            "--top",
            "2",
            "--log-dir",
            str(log_dir),
        ]
    )

    assert exit_code == 0
    assert len(capsys.readouterr().out.strip().splitlines()) == 1 + 2
    assert (log_dir / "run.log").exists()
    for handler in list(cli.LOGGER.handlers):
        if isinstance(handler, logging.FileHandler):
            cli.LOGGER.removeHandler(handler)
            handler.close()


def test_cli_reports_configuration_errors(tmp_path, caplog):
    _, config_path = _write_inputs(tmp_path)

    with caplog.at_level(logging.ERROR, logger="stochopt"):
        exit_code = cli.main(["--config", str(config_path)])

    assert exit_code == 2
    assert "캔들 CSV" in caplog.text
