from __future__ import annotations

import logging

from loguru import logger

from websearch.services.logger import NOISY_LOGGERS, configure_logging, log_event, log_model_attempt


def test_configure_logging_writes_daily_file_and_quiets_noisy_loggers(tmp_path):
    log_dir = tmp_path / "logs"

    configure_logging("INFO", log_dir=str(log_dir), noisy_level="ERROR")
    log_model_attempt("llama3.2:1b", caller="test", tokens=5, duration_ms=10, num_ctx=4096)
    log_model_attempt("mistral:7b", caller="test", error="model not found")
    log_event("run_complete", "ok", query="q")
    logger.complete()

    files = list(log_dir.glob("websearch_*.log"))
    assert len(files) == 1
    content = files[0].read_text(encoding="utf-8")
    assert "MODEL_CALL:" in content
    assert "MODEL_CALL_FAILED:" in content
    assert "model not found" in content
    assert "EVENT[run_complete]: ok" in content
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.ERROR

    configure_logging("WARNING")
