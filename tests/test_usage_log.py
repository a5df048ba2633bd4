import json
import sys

from eqsim import usage_log
from eqsim.usage_log import append_record, format_summary, read_events, summarize


def test_append_then_read_skips_bad_lines(tmp_path):
    path = str(tmp_path / "usage.jsonl")
    append_record(path, {"event": "sim_run", "uid": "a", "classId": "rogue"})
    with open(path, "a", encoding="utf-8") as f:
        f.write("not json\n\n")
    append_record(path, {"event": "page_view", "uid": "b"})
    append_record(path, {"event": "sim_run", "uid": "b", "classId": "monk"})

    events = list(read_events(path))
    assert [e["uid"] for e in events] == ["a", "b"]
    with open(path, encoding="utf-8") as f:
        first = f.readline()
    assert json.loads(first)["classId"] == "rogue"
    assert " " not in first


def test_summarize_counts():
    events = [
        {"uid": "u1", "classId": "warrior", "w1": {"preset": "Axe"}, "w2": {"preset": "Dagger"}},
        {"uid": "u1", "classId": "warrior", "w1": {"preset": "Axe"}, "specialAttacks": True},
        {"uid": "u2", "w1": {}, "fistweaving": True},
    ]
    s = summarize(events)
    assert s["total_runs"] == 3
    assert s["unique_users"] == 2
    assert s["by_class"] == {"warrior": 2, "none": 1}
    assert s["top_w1_presets"] == [("Axe", 2), ("custom", 1)]
    assert ("Axe + Dagger", 1) in s["top_combos"]
    assert ("Axe + none", 1) in s["top_combos"]
    assert s["with_special"] == 1
    assert s["with_fistweaving"] == 1


def test_format_summary_empty():
    text = format_summary(summarize([]))
    assert "Total sim runs: 0" in text
    assert "Runs by class: -" in text


def test_main_missing_log(tmp_path, monkeypatch, capsys):
    missing = tmp_path / "missing.jsonl"
    monkeypatch.setattr(sys, "argv", ["eqsim-usage", "--log", str(missing)])
    usage_log.main()
    assert capsys.readouterr().out.startswith(f"No {missing} found")


def test_main_prints_summary(tmp_path, monkeypatch, capsys):
    path = tmp_path / "usage.jsonl"
    append_record(str(path), {"event": "sim_run", "uid": "x", "classId": "bard"})
    monkeypatch.setattr(sys, "argv", ["eqsim-usage", "--log", str(path)])
    usage_log.main()
    out = capsys.readouterr().out
    assert "Total sim runs: 1" in out
    assert "bard: 1" in out
