import json

from webpoll.utils.logger import attach_file_logger, bind, detach_file_logger, get_logger, log_with_context, unbind


def test_file_logger_writes_json_lines_with_bound_context(tmp_path):
    out = tmp_path / "logs" / "run.jsonl"
    handler = attach_file_logger(out)
    bind(run_id="r1")
    try:
        log = get_logger("webpoll.tests")
        log.warning("plain")
        log_with_context(log, step_index=2).warning("scoped")
    finally:
        unbind("run_id")
        detach_file_logger(handler)

    lines = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    assert [line["msg"] for line in lines] == ["plain", "scoped"]
    assert lines[0]["run_id"] == "r1" and "step_index" not in lines[0]
    assert lines[1]["step_index"] == 2
    assert lines[1]["level"] == "WARNING"
    assert lines[1]["logger"] == "webpoll.tests"
