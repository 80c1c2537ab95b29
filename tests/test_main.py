"""
Command-Line Pipeline Tests
"""
from edge_engine.main import main


class TestMain:

    def test_default_pipeline_with_allocation(self, capsys):
        code = main(["--simulations", "200", "--trades", "20", "--allocate"])
        out = capsys.readouterr().out

        assert code == 0
        assert "PHASE 3" in out
        assert "Symbol C" in out
        assert "EDGE ANALYSIS COMPLETE" in out

    def test_raw_pnl_file(self, tmp_path, raw_pnl_tokens, capsys):
        pnl_file = tmp_path / "trades.txt"
        pnl_file.write_text("\n".join(str(v) for v in raw_pnl_tokens))

        code = main(["--pnl-file", str(pnl_file), "--simulations", "100", "--trades", "10"])

        assert code == 0
        assert "1R unit" in capsys.readouterr().out

    def test_too_few_trades_reports_error(self, tmp_path, capsys):
        pnl_file = tmp_path / "short.txt"
        pnl_file.write_text("10, -5, 20")

        code = main(["--pnl-file", str(pnl_file)])

        assert code == 1
        assert "ERROR" in capsys.readouterr().err

    def test_missing_file_reports_error(self, tmp_path):
        assert main(["--pnl-file", str(tmp_path / "nope.txt")]) == 1

    def test_invalid_run_size(self, capsys):
        assert main(["--simulations", "0"]) == 1
