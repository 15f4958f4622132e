import pytest

from romsync.ingestion.batch_queue import BatchFile
from romsync.config.platforms import PlatformCatalog, PlatformDefinition
from romsync.ingestion.batch_validator import BatchPolicy, validate_batch


@pytest.fixture
def policy():
    return BatchPolicy(max_batch_size=3, max_file_size=1000, allowed_extensions=(".nes", ".sfc"))


@pytest.mark.unit
def test_valid_batch(policy):
    result = validate_batch(
        [{"filename": "a.nes", "size": 10}, {"name": "B.SFC", "size": 1000}],
        policy,
    )

    assert result.valid is True
    assert result.error is None


@pytest.mark.unit
def test_batch_too_large(policy):
    files = [{"filename": f"{i}.nes", "size": 1} for i in range(4)]

    result = validate_batch(files, policy)

    assert result.valid is False
    assert result.error == "Batch size 4 exceeds max batch size of 3"


@pytest.mark.unit
def test_file_too_large(policy):
    result = validate_batch([BatchFile(filename="big.nes", path="/u/big.nes", size=1001)], policy)

    assert result.error == "File big.nes exceeds max file size of 1000 bytes"


@pytest.mark.unit
@pytest.mark.parametrize("name", ["readme.txt", "noext", "archive.nes.bak"])
def test_invalid_extension(policy, name):
    result = validate_batch([{"filename": name, "size": 1}], policy)

    assert result.valid is False
    assert result.error == f"File {name} has invalid file extension. Allowed: .nes, .sfc"


@pytest.mark.unit
def test_policy_from_config_defaults():
    policy = BatchPolicy.from_config({"batch": {}})

    assert policy.max_batch_size == 100
    assert policy.max_file_size == 50 * 1024 * 1024
    assert policy.allowed_extensions == tuple(PlatformCatalog.default().extensions)
    assert ".z64" in policy.allowed_extensions
    assert ".zip" not in policy.allowed_extensions


@pytest.mark.unit
def test_policy_from_config_overrides():
    policy = BatchPolicy.from_config({
        "batch": {"max_batch_size": 5, "allowed_extensions": [".NES"]},
    })

    assert policy.max_batch_size == 5
    assert policy.allowed_extensions == (".nes",)


@pytest.mark.unit
def test_default_policy_accepts_every_catalog_extension():
    policy = BatchPolicy.from_config({"batch": {}})
    files = [{"filename": f"game{ext}", "size": 1} for ext in (".smc", ".z64", ".v64", ".cue", ".bin", ".chd")]

    assert validate_batch(files, policy).valid is True


@pytest.mark.unit
def test_policy_follows_loaded_catalog():
    catalog = PlatformCatalog([
        PlatformDefinition(id="gb", name="Game Boy", extensions=(".gb", ".gbc")),
    ])

    policy = BatchPolicy.from_config({"batch": {}}, catalog)

    assert policy.allowed_extensions == (".gb", ".gbc")
    assert validate_batch([{"filename": "Tetris.nes", "size": 1}], policy).valid is False
