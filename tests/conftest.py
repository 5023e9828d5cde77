import json
from pathlib import Path

import pytest

from deployer.artifacts import ContractArtifact, load_artifact
from fakes import SPLITTER_ABI


@pytest.fixture
def artifact_path(tmp_path: Path) -> Path:
    path = tmp_path / "artifacts" / "contracts" / "X402Splitter.sol" / "X402Splitter.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "contractName": "X402Splitter",
                "sourceName": "contracts/X402Splitter.sol",
                "abi": SPLITTER_ABI,
                "bytecode": "0x6080604052",
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def artifact(artifact_path: Path) -> ContractArtifact:
    return load_artifact("X402Splitter", artifact_path)
