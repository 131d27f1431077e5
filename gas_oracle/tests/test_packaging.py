"""Checks that the distribution ships every runtime module."""

from pathlib import Path

from setuptools import find_namespace_packages

ROOT = Path(__file__).resolve().parents[2]


class TestPackageDiscovery:
    """Test setuptools package discovery for the flat layout."""

    def test_runtime_packages_found(self) -> None:
        """gas_oracle has no __init__.py and must still be discovered."""
        packages = find_namespace_packages(
            where=str(ROOT), include=["gas_oracle*"], exclude=["gas_oracle.tests*"]
        )
        assert {"gas_oracle", "gas_oracle.src", "gas_oracle.src.fetchers"} <= set(packages)
        assert not any(p.startswith("gas_oracle.tests") for p in packages)

    def test_entry_point_module_present(self) -> None:
        assert (ROOT / "gas_oracle" / "main.py").is_file()
        assert (ROOT / "gas_oracle" / "src" / "abi" / "GasOracle.json").is_file()

    def test_discovery_is_namespace_aware(self) -> None:
        """The build configuration should enable namespace discovery."""
        pyproject = (ROOT / "pyproject.toml").read_text()
        assert "namespaces = true" in pyproject
