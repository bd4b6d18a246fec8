"""Tests for configuration loading."""

from pathlib import Path
import pytest
from converge.ingest import build_registry, load_configuration
from converge.registry import ReferenceValue, ResourceAddress
from converge.utils.errors import ConfigurationError, DuplicateResource

EXAMPLE = Path(__file__).parents[2] / "examples" / "webserver.yaml"


class TestLoadConfiguration:
    """Test loading declarations from files."""
    
    def test_load_example_topology(self):
        registry = load_configuration(str(EXAMPLE))
        
        assert len(registry) == 9
        instance = registry.get("aws_instance", "web")
        nic = instance.attributes["network_interface"].entries["network_interface_id"]
        assert isinstance(nic, ReferenceValue)
        assert nic.address == ResourceAddress("aws_network_interface", "web")
        
        eip = registry.get("aws_eip", "web")
        assert eip.depends_on == [ResourceAddress("aws_internet_gateway", "gw")]
    
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_configuration(str(tmp_path / "missing.yaml"))
    
    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("resources: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_configuration(str(path))
    
    def test_json_is_accepted(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"resources": [{"kind": "network", "name": "n1", "attributes": {"cidr": "10.0.0.0/16"}}]}')
        registry = load_configuration(str(path))
        assert registry.contains("network.n1")


class TestBuildRegistry:
    """Test validation of decoded configuration data."""
    
    def test_empty_document(self):
        assert len(build_registry(None)) == 0
    
    def test_missing_resources_key(self):
        with pytest.raises(ConfigurationError, match="'resources'"):
            build_registry({"items": []})
    
    def test_invalid_declaration_reports_index(self):
        data = {"resources": [{"kind": "network", "name": "ok"}, {"kind": "network"}]}
        with pytest.raises(ConfigurationError, match="index 1"):
            build_registry(data)
    
    def test_unknown_fields_rejected(self):
        data = {"resources": [{"kind": "network", "name": "n1", "attrs": {}}]}
        with pytest.raises(ConfigurationError):
            build_registry(data)
    
    def test_duplicates_rejected(self):
        data = {"resources": [{"kind": "network", "name": "n1"}, {"kind": "network", "name": "n1"}]}
        with pytest.raises(DuplicateResource):
            build_registry(data)
