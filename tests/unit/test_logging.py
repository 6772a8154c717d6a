import logging

import pytest

from pagewindow import ItemIndex, Paginator, QueryResult
from pagewindow._logging import logger, redact_id, redact_ids

# --- Tests ---


@pytest.mark.asyncio
async def test_logging_lifecycle(source, letters, caplog):
    """Verify that logging occurs at expected levels during a query and a removal."""
    source.query.return_value = QueryResult(items=[letters["a"], letters["b"]])
    paginator = Paginator(source, item_index=ItemIndex())

    caplog.set_level(logging.DEBUG, logger="pagewindow")

    # 1. Query logging
    await paginator.to_tail()

    assert "Querying page" in caplog.text  # INFO
    assert "Ingested page" in caplog.text  # DEBUG
    assert "Page loaded" in caplog.text  # INFO

    # Every paginator record carries the paginator id
    has_context = any(
        getattr(record, "paginator", None) == paginator.id for record in caplog.records
    )
    assert has_context, "Log records missing 'paginator' context"

    # 2. Removal logging uses redacted ids only
    caplog.clear()
    paginator.remove_item("a")

    assert "Removed item" in caplog.text
    removal = [record for record in caplog.records if record.getMessage() == "Removed item"]
    assert removal[0].item_hash == redact_id("a")
    assert all(getattr(record, "item_hash", None) != "a" for record in caplog.records)


@pytest.mark.asyncio
async def test_skipped_query_is_debug_only(source, caplog):
    caplog.set_level(logging.INFO, logger="pagewindow")
    paginator = Paginator(source)
    paginator.state.partial_next(is_loading=True)

    assert await paginator.to_tail() is None
    assert "Query skipped" not in caplog.text
    source.query.assert_not_awaited()


def test_library_logger_is_silent_by_default():
    assert logger.name == "pagewindow"
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_redact_id_is_stable_digest():
    digest = redact_id("channel:user-42")

    assert len(digest) == 8
    assert digest == redact_id("channel:user-42")
    assert digest != redact_id("channel:user-43")
    assert "user-42" not in digest
    int(digest, 16)


def test_redact_ids_limit():
    ids = [f"id{n}" for n in range(10)]

    assert redact_ids(ids) == [redact_id(item_id) for item_id in ids[:5]]
    assert len(redact_ids(ids, limit=2)) == 2
    assert redact_ids([]) == []
