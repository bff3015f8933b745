"""Tests for the shared data models."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from image_labeler.core.exceptions import ConfigurationError, MalformedRecordError
from image_labeler.core.models import (
    AppConfig,
    DisplayItem,
    Label,
    ListPage,
    MetadataRecord,
    ObjectCreatedNotification,
    ProcessingResult,
    UploadTicket,
)


def make_record(**overrides) -> MetadataRecord:
    values = {
        "image_key": "images/100-photo.jpg",
        "bucket_name": "test-bucket",
        "image_size": 2048,
        "processed_at": datetime(2026, 10, 17, 12, 30, 45, tzinfo=timezone.utc),
        "thumbnail_key": "thumbnails/images/100-photo.jpg",
        "detected_labels": [Label(name="Cat", confidence=91.2)],
    }
    values.update(overrides)
    return MetadataRecord(**values)


class TestLabel:
    """Tests for Label."""

    def test_valid_label(self):
        label = Label(name="Dog", confidence=88.5)
        assert label.name == "Dog"
        assert label.confidence == 88.5

    @pytest.mark.parametrize("confidence", [-0.1, 100.1])
    def test_confidence_out_of_range(self, confidence):
        with pytest.raises(PydanticValidationError):
            Label(name="Dog", confidence=confidence)


class TestMetadataRecord:
    """Tests for MetadataRecord."""

    def test_processed_at_serialized_as_utc_seconds(self):
        record = make_record(
            processed_at=datetime(2026, 10, 17, 12, 30, 45, 999999, tzinfo=timezone.utc)
        )

        assert record.model_dump(mode="json")["processed_at"] == "2026-10-17T12:30:45Z"

    def test_processed_at_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        record = make_record(processed_at=datetime(2026, 10, 17, 14, 0, 0, tzinfo=plus_two))

        assert record.processed_at == datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)

    def test_naive_processed_at_assumed_utc(self):
        record = make_record(processed_at=datetime(2026, 1, 2, 3, 4, 5))

        assert record.processed_at.tzinfo == timezone.utc

    def test_processed_at_parsed_from_string(self):
        record = make_record(processed_at="2026-10-17T12:30:45Z")

        assert record.processed_at == datetime(2026, 10, 17, 12, 30, 45, tzinfo=timezone.utc)

    def test_empty_image_key_rejected(self):
        with pytest.raises(PydanticValidationError):
            make_record(image_key="")

    def test_record_is_immutable(self):
        record = make_record()

        with pytest.raises(PydanticValidationError):
            record.image_key = "other"

    def test_display_key_prefers_thumbnail(self):
        assert make_record().display_key == "thumbnails/images/100-photo.jpg"
        assert make_record(thumbnail_key="").display_key == "images/100-photo.jpg"

    def test_json_field_names(self):
        data = make_record().model_dump(mode="json")

        assert data == {
            "image_key": "images/100-photo.jpg",
            "bucket_name": "test-bucket",
            "image_size": 2048,
            "processed_at": "2026-10-17T12:30:45Z",
            "thumbnail_key": "thumbnails/images/100-photo.jpg",
            "detected_labels": [{"name": "Cat", "confidence": 91.2}],
        }

    def test_to_item_uses_decimal_confidence(self):
        item = make_record().to_item()

        assert item["processed_at"] == "2026-10-17T12:30:45Z"
        assert item["detected_labels"] == [{"name": "Cat", "confidence": Decimal("91.2")}]
        assert not any(isinstance(v, float) for v in item.values())

    def test_from_item_restores_record(self):
        record = make_record()
        item = record.to_item()
        item["image_size"] = Decimal("2048")

        restored = MetadataRecord.from_item(item)

        assert restored == record
        assert isinstance(restored.image_size, int)
        assert isinstance(restored.detected_labels[0].confidence, float)

    def test_from_item_missing_processed_at(self):
        with pytest.raises(MalformedRecordError, match="images/1-image"):
            MetadataRecord.from_item({"image_key": "images/1-image", "bucket_name": "b"})

    def test_from_item_invalid_confidence(self):
        item = make_record().to_item()
        item["detected_labels"] = [{"name": "Cat", "confidence": Decimal("150")}]

        with pytest.raises(MalformedRecordError):
            MetadataRecord.from_item(item)

    def test_from_item_non_numeric_size(self):
        item = make_record().to_item()
        item["image_size"] = "large"

        with pytest.raises(MalformedRecordError):
            MetadataRecord.from_item(item)

    def test_from_item_tolerates_missing_optional_attributes(self):
        restored = MetadataRecord.from_item(
            {"image_key": "images/1-image", "processed_at": "2026-10-17T00:00:00Z"}
        )

        assert restored.thumbnail_key == ""
        assert restored.detected_labels == []
        assert restored.image_size == 0


class TestResponseModels:
    """Tests for DisplayItem, ListPage and UploadTicket."""

    def test_display_item_with_url(self):
        response = DisplayItem(record=make_record(), url="https://signed").to_response()

        assert response["url"] == "https://signed"
        assert response["image_key"] == "images/100-photo.jpg"

    def test_display_item_without_url_omits_field(self):
        response = DisplayItem(record=make_record()).to_response()

        assert "url" not in response

    def test_list_page_response(self):
        page = ListPage(
            items=[DisplayItem(record=make_record(), url="u")],
            total_count=25,
            page=2,
            limit=10,
            has_more=True,
        )

        response = page.to_response()

        assert set(response) == {"items", "total_count", "page", "limit", "has_more"}
        assert response["total_count"] == 25
        assert response["has_more"] is True
        assert response["items"][0]["url"] == "u"

    def test_upload_ticket_uses_camel_case_alias(self):
        ticket = UploadTicket(upload_url="https://put", key="images/1-image")

        assert ticket.model_dump(by_alias=True) == {
            "uploadUrl": "https://put",
            "key": "images/1-image",
        }


class TestObjectCreatedNotification:
    """Tests for ObjectCreatedNotification."""

    def test_from_s3_record_decodes_key(self):
        record = {
            "s3": {
                "bucket": {"name": "test-bucket"},
                "object": {"key": "images/my+photo%281%29.jpg", "size": 1234},
            }
        }

        notification = ObjectCreatedNotification.from_s3_record(record)

        assert notification.bucket == "test-bucket"
        assert notification.key == "images/my photo(1).jpg"
        assert notification.size == 1234

    def test_missing_size_defaults_to_zero(self):
        record = {"s3": {"bucket": {"name": "b"}, "object": {"key": "k"}}}

        assert ObjectCreatedNotification.from_s3_record(record).size == 0

    def test_negative_size_rejected(self):
        with pytest.raises(PydanticValidationError):
            ObjectCreatedNotification(bucket="b", key="k", size=-1)


class TestProcessingResult:
    """Tests for ProcessingResult."""

    def test_defaults(self):
        result = ProcessingResult(key="images/1-image")

        assert result.success is False
        assert result.skipped is False
        assert result.retryable is False
        assert result.error == ""


class TestAppConfig:
    """Tests for AppConfig."""

    def test_defaults(self):
        config = AppConfig()

        assert config.table_name == "image-labels"
        assert config.bucket_name is None
        assert config.thumbnail_prefix == "thumbnails/"
        assert config.thumbnail_width == 300
        assert config.max_labels == 10
        assert config.min_confidence == 70.0
        assert config.batch_policy == "fail_fast"
        assert config.upload_url_expiry == 900
        assert config.read_url_expiry == 3600
        assert config.allowed_content_types == ("image/jpeg", "image/png")

    def test_from_env(self):
        config = AppConfig.from_env(
            {
                "DYNAMODB_TABLE_NAME": "labels",
                "S3_BUCKET_NAME": "uploads",
                "THUMBNAIL_WIDTH": "150",
                "MIN_CONFIDENCE": "55.5",
                "BATCH_POLICY": "aggregate",
                "MAX_WORKERS": "4",
            }
        )

        assert config.table_name == "labels"
        assert config.bucket_name == "uploads"
        assert config.thumbnail_width == 150
        assert config.min_confidence == 55.5
        assert config.batch_policy == "aggregate"
        assert config.max_workers == 4

    def test_from_env_ignores_empty_values(self):
        config = AppConfig.from_env({"DYNAMODB_TABLE_NAME": "", "S3_BUCKET_NAME": ""})

        assert config.table_name == "image-labels"
        assert config.bucket_name is None

    @pytest.mark.parametrize(
        "env",
        [
            {"MIN_CONFIDENCE": "not-a-number"},
            {"BATCH_POLICY": "best_effort"},
            {"THUMBNAIL_WIDTH": "0"},
            {"MAX_LABELS": "-3"},
        ],
    )
    def test_from_env_invalid_values(self, env):
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            AppConfig.from_env(env)

    def test_require_bucket(self):
        assert AppConfig(bucket_name="uploads").require_bucket() == "uploads"

    def test_require_bucket_missing(self):
        with pytest.raises(ConfigurationError, match="S3_BUCKET_NAME"):
            AppConfig().require_bucket()
