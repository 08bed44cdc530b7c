import asyncio
import logging
import os
import re
import shlex
import shutil
import signal
import subprocess
import sys
import time

import pytest

from subtensor_evm.src import Constants, defaults
from subtensor_evm.src.bittensor.utils import get_evm_rpc
from subtensor_evm.src.bittensor.wallets import (
    generate_random_evm_account,
    get_keypair_from_uri,
    get_random_substrate_keypair,
)

from .utils import (
    IDENTITY_WITH_LOGO,
    LocalChain,
    FundedAccounts,
    fund_test_accounts,
    register_subnet,
    turn_off_hyperparam_freeze_window,
)


def wait_for_node_start(process, pattern, timestamp: int = None):
    for line in process.stdout:
        print(line.strip())
        # 20 min as timeout
        timestamp = timestamp or int(time.time())
        if int(time.time()) - timestamp > 20 * 60:
            pytest.fail("Subtensor not started in time")
        if pattern.search(line):
            print("Node started!")
            break


# Fixture for setting up and tearing down a localnet.sh chain, shared by the tests of a module
@pytest.fixture(scope="module")
def local_chain(request):
    """
    Yields the endpoints of a running chain: `SUBTENSOR_WS_URL` when set, otherwise a chain started in Docker or
    through the localnet.sh script.
    """
    if ws_url := os.getenv("SUBTENSOR_WS_URL"):
        yield LocalChain(ws_url, get_evm_rpc(ws_url, os.getenv("SUBTENSOR_EVM_RPC_URL")))
        return
    args = request.param if hasattr(request, "param") else None
    params = "" if args is None else f"{args}"
    if shutil.which("docker") and not os.getenv("USE_DOCKER") == "0":
        yield from docker_runner(params)
    else:
        if not os.getenv("USE_DOCKER") == "0":
            if sys.platform.startswith("linux"):
                docker_command = (
                    "Install docker with command "
                    "[blue]sudo apt-get update && sudo apt-get install docker.io -y[/blue]"
                    " or use documentation [blue]https://docs.docker.com/engine/install/[/blue]"
                )
            elif sys.platform == "darwin":
                docker_command = (
                    "Install docker with command [blue]brew install docker[/blue]"
                )
            else:
                docker_command = "[blue]Unknown OS, install Docker manually: https://docs.docker.com/get-docker/[/blue]"

            logging.warning("Docker not found in the operating system!")
            logging.warning(docker_command)
            logging.warning("Tests are run in legacy mode.")
        yield from legacy_runner(request)


def legacy_runner(request):
    param = request.param if hasattr(request, "param") else None
    # Get the environment variable for the script path
    script_path = os.getenv("LOCALNET_SH_PATH")

    if not script_path:
        # Skip the test if the localhost.sh path is not set
        logging.warning("LOCALNET_SH_PATH env variable is not set, e2e test skipped.")
        pytest.skip("LOCALNET_SH_PATH environment variable is not set.")

    # Check if param is None, and handle it accordingly
    args = "" if param is None else f"{param}"

    # Compile commands to send to process
    cmds = shlex.split(f"{script_path} {args}")
    # Start new node process
    process = subprocess.Popen(
        cmds, stdout=subprocess.PIPE, text=True, preexec_fn=os.setsid
    )

    # Pattern match indicates node is compiled and ready
    pattern = re.compile(r"Imported #1")
    wait_for_node_start(process, pattern)

    yield LocalChain("ws://127.0.0.1:9945", "http://127.0.0.1:9945")

    # Terminate the process group (includes all child processes)
    os.killpg(os.getpgid(process.pid), signal.SIGTERM)

    # Give some time for the process to terminate
    time.sleep(1)

    # If the process is not terminated, send SIGKILL
    if process.poll() is None:
        os.killpg(os.getpgid(process.pid), signal.SIGKILL)

    # Ensure the process has terminated
    process.wait()


def docker_runner(params):
    """Starts a Docker container before tests and gracefully terminates it after."""

    def is_docker_running():
        """Check if Docker is running and optionally skip pulling the image."""
        try:
            subprocess.run(
                ["docker", "info"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=True,
            )

            skip_pull = os.getenv("SKIP_PULL", "0") == "1"
            if not skip_pull:
                subprocess.run(
                    ["docker", "pull", Constants.localnet_image], check=True
                )
            else:
                print(f"[SKIP_PULL=1] Skipping 'docker pull {Constants.localnet_image}'")

            return True
        except subprocess.CalledProcessError:
            return False

    def try_start_docker():
        """Run docker based on OS."""
        try:
            subprocess.run(["open", "-a", "Docker"], check=True)  # macOS
        except (FileNotFoundError, subprocess.CalledProcessError):
            try:
                subprocess.run(["systemctl", "start", "docker"], check=True)  # Linux
            except (FileNotFoundError, subprocess.CalledProcessError):
                try:
                    subprocess.run(
                        ["sudo", "service", "docker", "start"], check=True
                    )  # Linux alternative
                except (FileNotFoundError, subprocess.CalledProcessError):
                    print("Failed to start Docker. Manual start may be required.")
                    return False

        # Wait Docker run 10 attempts with 3 sec waits
        for _ in range(10):
            if is_docker_running():
                return True
            time.sleep(3)

        print("Docker wasn't run. Manual start may be required.")
        return False

    container_name = f"test_local_chain_{str(time.time()).replace('.', '_')}"

    # Command to start container
    cmds = [
        "docker",
        "run",
        "--rm",
        "--name",
        container_name,
        "-p",
        "9944:9944",
        "-p",
        "9945:9945",
        Constants.localnet_image,
        params,
    ]

    try_start_docker()

    # Start container
    with subprocess.Popen(
        cmds,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        start_new_session=True,
    ) as process:
        try:
            pattern = re.compile(r"Imported #1")
            wait_for_node_start(process, pattern, int(time.time()))

            result = subprocess.run(
                ["docker", "ps", "-q", "-f", f"name={container_name}"],
                capture_output=True,
                text=True,
            )
            if not result.stdout.strip():
                raise RuntimeError("Docker container failed to start.")
            yield LocalChain(Constants.local_entrypoint, Constants.local_evm_rpc)

        finally:
            try:
                subprocess.run(["docker", "kill", container_name])
                process.wait(timeout=10)
            except subprocess.TimeoutExpired:
                os.killpg(os.getpgid(process.pid), signal.SIGKILL)


@pytest.fixture(scope="module")
def sudo_keypair():
    return get_keypair_from_uri(os.getenv("SUDO_URI") or defaults.faucet.sudo_uri)


@pytest.fixture(scope="module")
def accounts(local_chain, sudo_keypair) -> FundedAccounts:
    """One EVM account and two substrate keypairs, created for this module and funded before any test runs."""
    test_accounts = FundedAccounts(
        evm=generate_random_evm_account(),
        hotkey1=get_random_substrate_keypair(),
        hotkey2=get_random_substrate_keypair(),
    )
    success, err_msg = asyncio.run(
        fund_test_accounts(local_chain, test_accounts, sudo_keypair)
    )
    if not success:
        pytest.fail(f"Funding test accounts failed: {err_msg}")
    return test_accounts


@pytest.fixture(scope="module")
def owned_netuid(local_chain, accounts, sudo_keypair) -> int:
    """
    Netuid of a subnet registered through the precompile by the EVM account, which therefore owns it. Handed to the
    hyperparameter tests explicitly.
    """
    try:
        success, err_msg = asyncio.run(
            turn_off_hyperparam_freeze_window(local_chain, sudo_keypair)
        )
        if not success:
            logging.warning(f"Unable to turn off hyperparams freeze window: {err_msg}")
    except ValueError:
        logging.warning(
            "Skipping turning off hyperparams freeze window. This indicates the call does not exist on the chain "
            "you are testing."
        )
    success, err_msg, netuid = asyncio.run(
        register_subnet(
            local_chain, accounts.evm, accounts.hotkey1, IDENTITY_WITH_LOGO
        )
    )
    if not success:
        pytest.fail(f"Registering the test subnet failed: {err_msg}")
    return netuid
