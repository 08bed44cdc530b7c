import pytest
from async_substrate_interface.errors import SubstrateRequestException

from subtensor_evm.src import HYPERPARAMS, ValueKind
from subtensor_evm.src.bittensor import utils
from subtensor_evm.src.bittensor.utils import (
    coerce_value,
    format_error_message,
    get_evm_rpc,
    load_config,
    parse_hyperparameter_value,
    validate_chain_endpoint,
    validate_evm_endpoint,
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for var in (
        "SUBTENSOR_WS_URL",
        "SUBTENSOR_EVM_RPC_URL",
        "SUDO_URI",
        "SUBTENSOR_EVM_CONFIG_PATH",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("SUBTENSOR_EVM_CONFIG_PATH", str(tmp_path / "missing.yml"))
    return tmp_path


@pytest.mark.parametrize(
    "kind,raw,expected",
    [
        (ValueKind.INT, 100, 100),
        (ValueKind.INT, "100", 100),
        (ValueKind.BOOL, 1, True),
        (ValueKind.BOOL, False, False),
        (ValueKind.PAIR, [118, 52429], (118, 52429)),
        (ValueKind.PAIR, (118, 52429), (118, 52429)),
        (ValueKind.INT, None, None),
    ],
)
def test_coerce_value(kind, raw, expected):
    assert coerce_value(kind, raw) == expected


def test_parse_hyperparameter_value():
    assert parse_hyperparameter_value(HYPERPARAMS["kappa"], "109") == 109
    assert parse_hyperparameter_value(HYPERPARAMS["yuma3_enabled"], "True") is True
    assert parse_hyperparameter_value(HYPERPARAMS["yuma3_enabled"], "0") is False
    assert parse_hyperparameter_value(HYPERPARAMS["alpha_values"], "118, 52429") == (
        118,
        52429,
    )
    with pytest.raises(ValueError):
        parse_hyperparameter_value(HYPERPARAMS["yuma3_enabled"], "maybe")
    with pytest.raises(ValueError):
        parse_hyperparameter_value(HYPERPARAMS["alpha_values"], "118")
    with pytest.raises(ValueError):
        parse_hyperparameter_value(HYPERPARAMS["kappa"], "ten")


@pytest.mark.parametrize(
    "network,evm_rpc,expected",
    [
        ("local", None, "http://127.0.0.1:9944"),
        ("finney", None, "https://lite.chain.opentensor.ai"),
        ("ws://127.0.0.1:9945", None, "http://127.0.0.1:9945"),
        ("wss://node.example.com:443", None, "https://node.example.com:443"),
        ("local", "http://10.0.0.2:9933", "http://10.0.0.2:9933"),
        ("not-a-network", None, "http://127.0.0.1:9944"),
    ],
)
def test_get_evm_rpc(network, evm_rpc, expected):
    assert get_evm_rpc(network, evm_rpc) == expected


def test_validate_endpoints():
    assert validate_chain_endpoint("ws://127.0.0.1:9944")[0] is True
    assert validate_chain_endpoint("http://127.0.0.1:9944")[0] is False
    assert validate_chain_endpoint("wss://")[0] is False
    assert validate_evm_endpoint("https://lite.chain.opentensor.ai")[0] is True
    assert validate_evm_endpoint("ws://127.0.0.1:9944")[0] is False


def test_load_config_defaults(clean_env):
    assert load_config() == {"network": None, "evm_rpc": None, "sudo_uri": None}


def test_load_config_file_and_env(clean_env, monkeypatch):
    config_path = clean_env / "evm-tests.yml"
    config_path.write_text(
        "network: ws://127.0.0.1:9945\nsudo_uri: //Bob\nunknown_key: 1\n"
    )
    config = load_config(str(config_path))
    assert config == {
        "network": "ws://127.0.0.1:9945",
        "evm_rpc": None,
        "sudo_uri": "//Bob",
    }

    monkeypatch.setenv("SUBTENSOR_EVM_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("SUDO_URI", "//Alice")
    monkeypatch.setenv("SUBTENSOR_EVM_RPC_URL", "http://127.0.0.1:9933")
    config = load_config()
    assert config["network"] == "ws://127.0.0.1:9945"
    assert config["sudo_uri"] == "//Alice"
    assert config["evm_rpc"] == "http://127.0.0.1:9933"


def test_format_error_message_module_error():
    msg = format_error_message(
        {
            "type": "Module",
            "name": "NotSubnetOwner",
            "docs": ["The caller is not the owner of the subnet."],
        }
    )
    assert "NotSubnetOwner(Module)" in msg
    assert "The caller is not the owner of the subnet." in msg


def test_format_error_message_request_exception():
    exception = SubstrateRequestException(
        str({"code": 1010, "message": "Invalid Transaction", "data": "Custom error: 6"})
    )
    msg = format_error_message(exception)
    assert "SubstrateRequestException(Invalid Transaction)" in msg
    assert "Custom error: 6" in msg

    assert format_error_message(SubstrateRequestException("boom")) == (
        "Subtensor returned: boom"
    )


def test_tao_to_rao():
    assert utils.tao_to_rao(1_000_000) == 1_000_000 * 10**9
    assert utils.tao_to_rao(0.5) == 500_000_000
