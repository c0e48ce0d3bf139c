"""Tests for the operatorcollectionsdk.workspace module."""

from __future__ import annotations

from pathlib import Path

import pytest

from operatorcollectionsdk.exceptions import ConfigurationError
from operatorcollectionsdk.workspace import (
    OperatorConfig,
    find_operators,
    load_extra_vars,
    load_operator_config,
)

OPERATOR_CONFIG = """
domain: ibm
name: ims-operator
version: 1.0.2
displayName: IMS Operator
resources:
  - playbook: ims_command.yml
    kind: IMSCommand
  - playbook: ims_transaction.yml
    kind: IMSTransaction
"""


def test_load_operator_config(tmp_path: Path) -> None:
    (tmp_path / "operator-config.yml").write_text(OPERATOR_CONFIG)

    config = load_operator_config(tmp_path)
    assert config.name == "ims-operator"
    assert config.kinds == ("IMSCommand", "IMSTransaction")
    assert config.api_version == "v1minor0patch2"
    assert config.csv_name == "ibm-ims-operator-operator.v1.0.2"


def test_api_version_with_build_number() -> None:
    config = OperatorConfig(name="a", version="1.0.2.5", domain="ibm")
    assert config.api_version == "v1minor0patch2-5"
    assert OperatorConfig(name="a", version="1.0", domain="ibm").api_version is None


def test_missing_operator_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_operator_config(tmp_path)


def test_incomplete_operator_config(tmp_path: Path) -> None:
    (tmp_path / "operator-config.yaml").write_text("name: ims-operator\n")

    with pytest.raises(ConfigurationError) as excinfo:
        load_operator_config(tmp_path)
    assert "version, domain" in str(excinfo.value)


def test_find_operators_skips_invalid(tmp_path: Path) -> None:
    valid = tmp_path / "ims" / "operator-config.yml"
    valid.parent.mkdir()
    valid.write_text(OPERATOR_CONFIG)
    invalid = tmp_path / "broken" / "operator-config.yml"
    invalid.parent.mkdir()
    invalid.write_text("name: [unterminated\n")

    assert find_operators(tmp_path) == {"ims-operator": valid}


def test_load_extra_vars(tmp_path: Path) -> None:
    assert load_extra_vars(tmp_path) == []

    (tmp_path / "ocsdk-extra-vars.yml").write_text(
        "zosendpoint_name: zos-lpar\nusername:\nport: 22\n"
    )
    assert load_extra_vars(tmp_path) == [
        "-e",
        "zosendpoint_name=zos-lpar",
        "-e",
        "username=",
        "-e",
        "port=22",
    ]
