import asyncio
import json

import pytest

import main
from config import SystemConfig, save_config
from utils import PerformanceMonitor, create_performance_report, format_duration


@pytest.fixture
def config(tmp_path):
    return SystemConfig(
        num_options=3,
        engine_id="0xDemoEngine",
        log_dir=tmp_path / "logs",
        results_dir=tmp_path / "results"
    )


def test_orchestrator_defaults_reader(config):
    orchestrator = main.ElectionOrchestrator(config)
    assert orchestrator.reader == main.DEFAULT_READER
    assert orchestrator.engine.readers == (main.DEFAULT_READER,)


def test_run_election_counts_rejections(config):
    orchestrator = main.ElectionOrchestrator(config)
    voters = [f"0x{i:040x}" for i in range(7)]

    results = asyncio.run(orchestrator.run_election(voters))

    assert results['tally'] == [3, 2, 2]
    assert results['submissions'] == {'accepted': 7, 'rejected': 2}
    assert [r['error'] for r in results['rejections']] == ['AlreadyVoted', 'InvalidOption']
    assert results['engine']['voters'] == 7


def test_run_demo_writes_reports(config, capsys):
    assert asyncio.run(main.run_demo(config, num_voters=5)) is True

    report = json.loads((config.results_dir / "demo_report.json").read_text())
    assert report['data']['tally'] == [2, 2, 1]
    assert (config.results_dir / "demo_report_summary.txt").exists()
    assert "SUBMIT" in (config.results_dir / "performance_report.txt").read_text()
    assert "ELECTION RESULTS" in capsys.readouterr().out


def test_main_deploy_mode(tmp_path, monkeypatch, capsys):
    path = tmp_path / "config.yaml"
    save_config(SystemConfig(num_options=2, engine_id="0xDeployed"), path)
    monkeypatch.setattr(main, "setup_logging", lambda *args, **kwargs: None)

    with pytest.raises(SystemExit) as excinfo:
        main.main(["--mode", "deploy", "--config", str(path)])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "Engine deployed: 0xDeployed" in out
    assert "Option 1: euint32:" in out


def test_main_rejects_bad_option_override(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda *args, **kwargs: None)
    with pytest.raises(SystemExit) as excinfo:
        main.main(["--options", "0", "--config", str(tmp_path / "absent.yaml")])
    assert excinfo.value.code == 2


def test_performance_report_and_durations():
    monitor = PerformanceMonitor()
    with monitor.start_operation("submit"):
        pass
    with pytest.raises(RuntimeError):
        with monitor.start_operation("submit"):
            raise RuntimeError("boom")

    summary = monitor.get_summary()
    assert summary['operations']['submit']['count'] == 2
    assert summary['operations']['submit']['failures'] == 1
    assert "2 (1 failed)" in create_performance_report(monitor)

    monitor.reset()
    assert monitor.get_summary()['total_operations'] == 0
    assert format_duration(0.5) == "500.0ms"
    assert format_duration(75) == "1m 15.0s"
