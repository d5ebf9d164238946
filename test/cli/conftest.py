import logging
from pathlib import Path

import pytest
import python_on_whales
from pytest_bdd import given, when, then, parsers

import cspace_provision.image
from test.cli.provision_command import ProvisionCommand


@pytest.fixture(autouse=True)
def isolated_system(fake_system, mock_docker_client):
    """Keep every CLI scenario away from the real PATH, network and Docker daemon."""
    return fake_system


@pytest.fixture
def provision_command():
    return ProvisionCommand()


# Construct the cspace-provision command and all arguments
@given("I call cspace-provision")
def bare_command(provision_command):
    provision_command.reset()


@given(parsers.parse('I call cspace-provision "{command}"'))
def top_level_command(provision_command, command):
    provision_command.reset()
    provision_command.set_subcommand(command)


@given("in a temp basic context", target_fixture="cli_test_tmpcontext")
def cli_tmpcontext(provision_command, basic_tmpcontext) -> Path:
    provision_command.context = basic_tmpcontext
    return basic_tmpcontext


@given("in a temp directory", target_fixture="cli_test_tmpcontext")
def tmp_directory(provision_command, tmp_path) -> Path:
    provision_command.context = tmp_path
    return tmp_path


@given(parsers.parse('with the arguments "{args}"'))
def add_args(provision_command, args):
    provision_command.add_args(args.split())


@given(parsers.parse('with the minimum version "{version}" in the configuration'))
def configured_minimum_version(cli_test_tmpcontext, version):
    (cli_test_tmpcontext / "cspace-provision.yaml").write_text(f'minimum_version: "{version}"\nstages: []\n')


@given("a configuration file that is not valid YAML")
def configured_invalid_yaml(cli_test_tmpcontext):
    (cli_test_tmpcontext / "cspace-provision.yaml").write_text("minimum_version: [1.2\nstages: {\n")


@given(parsers.parse('a configuration file that sets "{key}" to "{value}"'))
def configured_key(cli_test_tmpcontext, key, value):
    (cli_test_tmpcontext / "cspace-provision.yaml").write_text(f"{key}: {value}\n")


@given("sudo is enabled in the configuration")
def configured_sudo(cli_test_tmpcontext):
    config_file = cli_test_tmpcontext / "cspace-provision.yaml"
    config_file.write_text(config_file.read_text().replace("use_sudo: false", "use_sudo: true"))


@given(parsers.parse('the template value "{name}" is removed from the configuration'))
def remove_template_value(cli_test_tmpcontext, name):
    config_file = cli_test_tmpcontext / "cspace-provision.yaml"
    lines = config_file.read_text().splitlines(keepends=True)
    config_file.write_text("".join(line for line in lines if not line.strip().startswith(f"{name}:")))


# Shape the system the command runs against
@given(parsers.parse('"{name}" version {version} is installed'))
def tool_installed(fake_system, name, version):
    fake_system.install(version, name=name)


@given(parsers.parse('"{name}" reports the version "{output}"'))
def tool_reports(fake_system, name, output):
    fake_system.tools[name] = output + "\n"


@given("Docker is not installed")
def tool_not_installed(fake_system):
    fake_system.tools.clear()


@given(parsers.parse("the Docker installation provides version {version}"))
def upgraded_version(fake_system, version):
    fake_system.upgraded_version = version


@given("the Docker installation fails")
def install_fails(fake_system):
    fake_system.install_exit_code = 1


@given(parsers.parse('the build of "{tag}" fails'))
def build_fails(mock_docker_client, tag):
    def _legacy_build(**kwargs):
        if tag in kwargs["tags"]:
            raise python_on_whales.DockerException(
                ["docker", "build", "--tag", tag, str(kwargs["context_path"])],
                1,
                b"",
                b"The command '/bin/sh -c apt-get update' returned a non-zero code: 100",
            )
        return None

    mock_docker_client.legacy_build.side_effect = _legacy_build


# Run the command
@when("I execute the command", target_fixture="command_logs")
def run(provision_command, caplog):
    caplog.set_level(logging.INFO)
    provision_command.run()
    return caplog


# Check the results of the command
@then("The command succeeds")
def check_success(provision_command):
    assert provision_command.result.exit_code == 0, repr(provision_command)


@then(parsers.parse("The command exits with code {exit_code:d}"))
def check_exit_code(provision_command, exit_code: int):
    assert provision_command.result.exit_code == exit_code, repr(provision_command)


@then("The command fails")
def check_failure(provision_command):
    assert provision_command.result.exit_code != 0


@then("usage is shown")
def check_usage(provision_command):
    assert "Usage:" in provision_command.result.stderr


@then("help is shown")
def check_help(provision_command):
    assert "Usage:" in provision_command.result.stdout
    assert "Options" in provision_command.result.stdout


@then(parsers.parse('the stdout output includes "{text}"'))
def check_stdout(provision_command, text):
    assert text in provision_command.result.stdout


@then(parsers.parse('the stderr output includes "{text}"'))
def check_stderr(provision_command, text):
    assert text in provision_command.result.stderr


@then(parsers.parse('the log includes "{text}"'))
def check_log(command_logs, text):
    assert text in command_logs.text


@then(parsers.parse('the context includes file "{path}"'))
def check_context(provision_command, path):
    assert (provision_command.context / path).is_file()


@then("Docker was installed")
def check_installed(fake_system):
    assert fake_system.ran("sh")


@then("Docker was not installed")
def check_not_installed(fake_system):
    assert not fake_system.ran("sh")


@then(parsers.parse("{count:d} images are built"))
def check_build_count(mock_docker_client, count: int):
    assert mock_docker_client.legacy_build.call_count == count


@then(parsers.parse('the image "{tag}" is built'))
def check_image_built(mock_docker_client, tag):
    assert [tag] in [c.kwargs["tags"] for c in mock_docker_client.legacy_build.call_args_list]


@then(parsers.parse('the image "{tag}" is not built'))
def check_image_not_built(mock_docker_client, tag):
    assert [tag] not in [c.kwargs["tags"] for c in mock_docker_client.legacy_build.call_args_list]


@then(parsers.parse('the builds run "{client_call}"'))
def check_client_call(client_call):
    cspace_provision.image.DockerClient.assert_called_once_with(client_call=client_call.split())
