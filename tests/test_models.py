"""Unit tests for models.py - InitializerController decoding."""

import pytest

from errors import DecodeError
from models import InitializerController

from conftest import make_config_record


class TestDecode:
    """Tests for InitializerController.decode."""

    def test_decode_valid(self, sample_config_record):
        ic = InitializerController.decode(sample_config_record)
        assert ic.name == "agent-a"
        assert ic.initializer_name == "agentA"
        assert ic.target_resources() == [("v1", "configmaps")]

    def test_target_resources_keep_order(self):
        record = make_config_record(
            resources=(
                ("apps/v1", ["deployments", "statefulsets"]),
                ("v1", ["services", "configmaps"]),
            )
        )
        ic = InitializerController.decode(record)
        assert ic.target_resources() == [
            ("apps/v1", "deployments"),
            ("apps/v1", "statefulsets"),
            ("v1", "services"),
            ("v1", "configmaps"),
        ]

    def test_target_resources_deduplicated(self):
        record = make_config_record(
            resources=(
                ("v1", ["configmaps", "services"]),
                ("v1", ["configmaps"]),
            )
        )
        ic = InitializerController.decode(record)
        assert ic.target_resources() == [("v1", "configmaps"), ("v1", "services")]

    def test_no_resources(self):
        record = make_config_record(resources=())
        assert InitializerController.decode(record).target_resources() == []

    def test_missing_initializer_name(self, sample_config_record):
        del sample_config_record["spec"]["initializerName"]
        with pytest.raises(DecodeError) as exc_info:
            InitializerController.decode(sample_config_record)
        assert exc_info.value.name == "agent-a"
        assert "initializerName" in str(exc_info.value)

    def test_empty_initializer_name(self, sample_config_record):
        sample_config_record["spec"]["initializerName"] = ""
        with pytest.raises(DecodeError):
            InitializerController.decode(sample_config_record)

    def test_missing_spec(self):
        with pytest.raises(DecodeError):
            InitializerController.decode({"metadata": {"name": "x"}})

    def test_wrong_resources_type(self, sample_config_record):
        sample_config_record["spec"]["uninitializedResources"] = "configmaps"
        with pytest.raises(DecodeError):
            InitializerController.decode(sample_config_record)

    def test_client_config_required(self, sample_config_record):
        sample_config_record["spec"]["clientConfig"] = {}
        with pytest.raises(DecodeError, match="service or url"):
            InitializerController.decode(sample_config_record)

    def test_not_a_mapping(self):
        with pytest.raises(DecodeError) as exc_info:
            InitializerController.decode(["not", "an", "object"])
        assert exc_info.value.name == "<unknown>"


class TestHookURL:
    """Tests for init hook URL construction."""

    def test_service_url(self, sample_config_record):
        ic = InitializerController.decode(sample_config_record)
        assert ic.hook_url() == "http://agent-a-hook.hooks/init"

    def test_service_url_with_port(self, sample_config_record):
        sample_config_record["spec"]["clientConfig"]["service"]["port"] = 8080
        ic = InitializerController.decode(sample_config_record)
        assert ic.hook_url() == "http://agent-a-hook.hooks:8080/init"

    def test_explicit_url(self, sample_config_record):
        sample_config_record["spec"]["clientConfig"] = {"url": "https://hooks.example.com/"}
        ic = InitializerController.decode(sample_config_record)
        assert ic.hook_url() == "https://hooks.example.com/init"

    def test_default_path(self, sample_config_record):
        del sample_config_record["spec"]["hooks"]
        ic = InitializerController.decode(sample_config_record)
        assert ic.hook_url() == "http://agent-a-hook.hooks/"
