from unittest.mock import AsyncMock, MagicMock

import pytest

from crosspost.application.services import PublishingService
from crosspost.domain import (
    BatchReport,
    DestinationCredential,
    DestinationResult,
    ErrorKind,
    PublishValidationError,
)


class TestPublishingService:
    @pytest.fixture
    def twitter_credential(self):
        return DestinationCredential(access_token="tw-token")

    @pytest.fixture
    def credential_store(self, twitter_credential):
        store = MagicMock()
        store.get_credentials = AsyncMock(return_value={"twitter": twitter_credential})
        store.mark_used = AsyncMock()
        return store

    @pytest.fixture
    def report(self):
        return BatchReport(
            results=(
                DestinationResult.succeeded("twitter", "t1"),
                DestinationResult.failed("instagram", ErrorKind.VALIDATION, "No credentials supplied for instagram"),
            )
        )

    @pytest.fixture
    def publisher(self, report):
        publisher = MagicMock()
        publisher.publish_many = AsyncMock(return_value=report)
        return publisher

    @pytest.fixture
    def service(self, publisher, credential_store):
        return PublishingService(publisher, credential_store)

    @pytest.mark.asyncio
    async def test_publish_for_user(self, service, publisher, credential_store, twitter_credential, report):
        result = await service.publish_for_user(
            user_id="user-1",
            content="hello",
            media=[],
            destinations=["Twitter", "instagram", "twitter"],
        )

        assert result is report
        credential_store.get_credentials.assert_awaited_once_with("user-1", ("twitter", "instagram"))
        request = publisher.publish_many.await_args.args[0]
        assert request.destinations == ("twitter", "instagram")
        assert request.content == "hello"
        assert request.credential_for("twitter") is twitter_credential
        assert request.credential_for("instagram") is None

    @pytest.mark.asyncio
    async def test_marks_only_successful_destinations(self, service, credential_store):
        await service.publish_for_user("user-1", "hello", [], ["twitter", "instagram"])

        credential_store.mark_used.assert_awaited_once_with("user-1", "twitter")

    @pytest.mark.asyncio
    async def test_bookkeeping_failure_does_not_change_report(self, service, credential_store, report):
        credential_store.mark_used.side_effect = Exception("database unavailable")

        result = await service.publish_for_user("user-1", "hello", [], ["twitter", "instagram"])

        assert result is report

    @pytest.mark.asyncio
    async def test_invalid_request_fails_before_lookup(self, service, credential_store, publisher):
        with pytest.raises(PublishValidationError):
            await service.publish_for_user("user-1", "hello", [], [])

        credential_store.get_credentials.assert_not_awaited()
        publisher.publish_many.assert_not_awaited()
