"""Tests for console rendering."""
import re
from dataclasses import replace
from pathlib import Path

from edgeserver_upload.cli_progress import _human_size
from edgeserver_upload.errors import ConfigurationError
from edgeserver_upload.models import ArchiveProgress, ArchiveResult, UploadOutcome


def test_human_size():
    assert _human_size(0) == "0 B"
    assert _human_size(-5) == "0 B"
    assert _human_size(1023) == "1023 B"
    assert _human_size(1536) == "1.50 KB"
    assert _human_size(5 * 1024 * 1024) == "5.00 MB"


def test_configuration_summary_masks_token(output, printed, config):
    config = replace(config, token="s3cr3t-token")

    output.configuration_summary(config, {"Archive": "edgeserver_dist.zip"})

    text = printed()
    assert "https://x.test" in text
    assert "**** [12]" in text
    assert "s3cr3t-token" not in text
    assert "edgeserver_dist.zip" in text


def test_validation_error(output, printed):
    output.validation_error(ConfigurationError("directory", "Please specify a directory such as `dist`"))

    text = printed()
    assert "Error Validating directory" in text
    assert "Please specify a directory such as `dist`" in text


def test_plain_progress_prints_bar_steps(output, printed):
    output.archive_started(total_bytes=100, file_count=2)
    for processed in (1, 5, 11, 15, 30, 100):
        output.archive_progress(ArchiveProgress(processed_bytes=processed, total_bytes=100, percent=processed))
    output.archive_finished(
        ArchiveResult(path=Path("edgeserver_dist.zip"), size_bytes=80, file_count=2, processed_bytes=100)
    )

    lines = [line.strip() for line in printed().splitlines() if "%" in line]
    assert [re.search(r"(\d+)%", line).group(1) for line in lines] == ["11", "30", "100"]
    assert lines[0].startswith("[" + "█" * 3 + "░" * 29 + "]")
    assert lines[-1].startswith("[" + "█" * 32 + "]")
    assert "Packaged: edgeserver_dist.zip (2 files, 80 B)" in printed()


def test_outcome_messages(output, printed):
    output.outcome(UploadOutcome.classify(200))
    output.outcome(UploadOutcome.classify(403))
    output.outcome(UploadOutcome.classify(502))

    text = printed()
    assert "Successfully Deployed" in text
    assert "Unauthorized" in text
    assert "Unknown error with status code 502" in text


def test_error_escapes_markup(output, printed):
    output.error("bad [bold]path[/bold]")
    assert "Error: bad [bold]path[/bold]" in printed()


def test_finished_panel_only_on_success(output, printed):
    output.finished(False)
    assert "Deployment complete" not in printed()
    output.finished(True)
    assert "Deployment complete" in printed()


def test_banner_has_author_line(output, printed):
    output.banner("1.0.0")

    text = printed()
    assert "edgeserver upload action v1.0.0" in text
    assert "Authored by @lvksh  github.com/lvksh/edgeserver-upload" in text


def test_archive_finished_shows_digest(output, printed):
    digest = "ab" * 32
    output.archive_finished(
        ArchiveResult(
            path=Path("edgeserver_dist.zip"),
            size_bytes=80,
            file_count=2,
            processed_bytes=100,
            blake3_hash=digest,
        )
    )

    assert f"blake3: {digest}" in printed()
