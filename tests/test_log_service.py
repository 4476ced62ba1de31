"""Test: LogService Job Capture"""

from modules.shared.logging import LogService


def test_capture_records_start_and_end():
    service = LogService()
    service.start_job_capture("job-1", "Nacht-Sync")
    service.log("job-1", "Nacht-Sync", "INFO", "Shop s1 fertig")
    service.end_job_capture("job-1", success=True, duration=1.5)

    logs = service.get_recent_logs("job-1")
    assert [entry["message"] for entry in logs] == [
        "Job gestartet: Nacht-Sync", "Shop s1 fertig", "Job beendet: SUCCESS"
    ]
    assert logs[-1]["duration_seconds"] == 1.5


def test_failed_job_is_logged_as_error():
    service = LogService()
    service.start_job_capture("job-1", "Nacht-Sync")
    service.end_job_capture("job-1", success=False, error="Shop nicht erreichbar")

    errors = service.get_logs(level="error")
    assert len(errors) == 1
    assert errors[0]["status"] == "FAILED"
    assert errors[0]["error_text"] == "Shop nicht erreichbar"


def test_buffer_is_bounded_per_job():
    service = LogService(max_entries_per_job=3)
    for i in range(5):
        service.log("job-1", "Test", "INFO", f"Zeile {i}")
    service.log("job-2", "Test", "INFO", "andere")

    assert [entry["message"] for entry in service.get_recent_logs("job-1")] == ["Zeile 2", "Zeile 3", "Zeile 4"]
    assert len(service.get_logs()) == 4
