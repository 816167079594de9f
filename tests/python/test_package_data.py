from importlib import resources


def test_lifecycle_config_resource_exists() -> None:
    config = resources.files("travel_lifecycle").joinpath("config", "lifecycle.yaml")
    assert config.is_file()
    assert "approval_chain" in config.read_text(encoding="utf-8")
