from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from eqsim.classes import Archetype
from eqsim.config import config_from_options, validate_config
from eqsim.fight import run_fight, simulate_many
from eqsim.report import format_report
from eqsim.usage_log import append_record

APP_DIR = os.path.dirname(os.path.abspath(__file__))
USAGE_LOG_PATH = os.environ.get("EQSIM_USAGE_LOG", os.path.join(APP_DIR, "usage-log.jsonl"))
PORT = int(os.environ.get("EQSIM_PORT", "8765"))
MAX_DURATION_SEC = 3600
MAX_TRIALS = 1000

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Max-Age": "86400",
}

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["USAGE_LOG_PATH"] = USAGE_LOG_PATH


def clamp_int(v: Any, lo: int, hi: int, default: int) -> int:
    try:
        x = int(v)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, x))


def clamp_float(v: Any, lo: float, hi: float, default: float) -> float:
    try:
        x = float(v)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, x))


def _clamp_weapon(w: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(w, dict):
        return None
    out = dict(w)
    out["damage"] = clamp_int(w.get("damage"), 0, 1000, 0)
    out["delay"] = clamp_int(w.get("delay"), 1, 1000, 30)
    if w.get("procSpellDamage") is not None:
        out["procSpellDamage"] = clamp_int(w.get("procSpellDamage"), 0, 100_000, 0)
    return out


def normalize_options(opts: Dict[str, Any]) -> Dict[str, Any]:
    """Clamp UI inputs into ranges the simulator accepts."""
    out = dict(opts)
    out["weapon1"] = _clamp_weapon(opts.get("weapon1"))
    out["weapon2"] = _clamp_weapon(opts.get("weapon2"))
    out["fightDurationSec"] = clamp_float(opts.get("fightDurationSec"), 0.1, MAX_DURATION_SEC, 60.0)
    out["level"] = clamp_int(opts.get("level"), 1, 65, 60)
    out["mobLevel"] = clamp_int(opts.get("mobLevel"), 1, 100, 60)
    out["hastePercent"] = clamp_float(opts.get("hastePercent"), 0, 200, 0)
    out["str"] = clamp_int(opts.get("str"), 0, 500, 255)
    if opts.get("dex") is not None:
        out["dex"] = clamp_int(opts.get("dex"), 0, 500, 255)
    for key in ("doubleAttackSkill", "dualWieldSkill"):
        out[key] = clamp_int(opts.get(key), 0, 500, 0)
    if opts.get("backstabSkill") is not None:
        out["backstabSkill"] = clamp_int(opts.get("backstabSkill"), 0, 500, 225)
    return out


@app.post("/api/simulate")
def api_simulate():
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "invalid json"}), 400

    opts = data.get("options", data)
    if not isinstance(opts, dict):
        return jsonify({"error": "options invalid"}), 400

    try:
        cfg = config_from_options(normalize_options(opts))
        validate_config(cfg)
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    report = run_fight(cfg)
    body: Dict[str, Any] = {
        "report": report.to_dict(),
        "text": format_report(report, opts.get("weapon1Label"), opts.get("weapon2Label")),
    }

    trials = clamp_int(data.get("trials", 1), 1, MAX_TRIALS, 1)
    if trials > 1:
        body["summary"] = simulate_many(cfg, trials=trials, seed=cfg.seed)

    logger.info(
        "simulate: class=%s duration=%.1fs dps=%.2f trials=%d",
        cfg.archetype.value, cfg.fight_duration_sec, report.dps, trials,
    )
    return jsonify(body)


@app.get("/api/classes")
def api_classes():
    return jsonify({"classes": [a.value for a in Archetype]})


@app.route("/log", methods=["POST", "OPTIONS"])
def log_run():
    """Append the posted run summary; bad bodies are dropped, never reported."""
    if request.method == "OPTIONS":
        return "", 204, CORS_HEADERS

    raw = request.get_data(as_text=True)
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.warning("dropping malformed usage record (%d bytes)", len(raw))
    else:
        try:
            append_record(app.config["USAGE_LOG_PATH"], payload)
        except OSError:
            logger.exception("could not append usage record")
    headers = {"Access-Control-Allow-Origin": "*", "Content-Type": "application/json"}
    return "{}", 200, headers


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logger.info("usage log collector: http://localhost:%d/log", PORT)
    logger.info("log file: %s", USAGE_LOG_PATH)
    app.run(host="0.0.0.0", port=PORT)
