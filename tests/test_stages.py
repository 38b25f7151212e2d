"""Test the individual pipeline stages."""
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError
import pytest

from calculator_site.common.exceptions import CredentialsError, StageFailedError
from calculator_site.pipeline.stages import (
    AuthenticateStage,
    BuildImageStage,
    CheckoutStage,
    CommandResult,
    CommandRunner,
    PipelineConfig,
    PushImageStage,
    default_stages,
    resolve_credentials,
)

CREDENTIALS = {"DOCKERHUB_CREDS_USR": "builder", "DOCKERHUB_CREDS_PSW": "s3cret"}


class RecordingRunner(CommandRunner):
    """Fake runner recording calls instead of spawning processes."""

    def __init__(self, returncode: int = 0, stderr: str = "") -> None:
        self.returncode = returncode
        self.stderr = stderr
        self.calls: List[dict] = []

    def run(self, args: Sequence[str], input_text: Optional[str] = None, cwd: Optional[Path] = None) -> CommandResult:
        self.calls.append({"args": list(args), "input_text": input_text})
        return CommandResult(returncode=self.returncode, stderr=self.stderr)


class MissingProgramRunner(CommandRunner):
    def run(self, args, input_text=None, cwd=None):
        raise FileNotFoundError(2, "No such file or directory", args[0])


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(image="team/calculator", tag="1.0", credentials_id="dockerhub-creds", workspace=tmp_path)


def test_config_image_ref(config: PipelineConfig) -> None:
    assert config.image_ref == "team/calculator:1.0"


@pytest.mark.parametrize("image", ["calculator", "team/calculator", "registry.example.com:5000/team/calc-app"])
def test_config_accepts_valid_image_names(image: str) -> None:
    assert PipelineConfig(image=image, credentials_id="creds").image == image


@pytest.mark.parametrize("field,value", [
    ("image", "Calculator"),
    ("image", "team/calculator:1.0"),
    ("tag", "-bad"),
    ("credentials_id", ""),
    ("credentials_id", "has space"),
])
def test_config_rejects_invalid_values(field: str, value: str) -> None:
    values = {"image": "team/calculator", "credentials_id": "creds", field: value}
    with pytest.raises(ValidationError):
        PipelineConfig(**values)


def test_resolve_credentials() -> None:
    assert resolve_credentials("dockerhub-creds", CREDENTIALS) == ("builder", "s3cret")


def test_resolve_credentials_missing_password() -> None:
    with pytest.raises(CredentialsError, match="DOCKERHUB_CREDS_PSW"):
        resolve_credentials("dockerhub-creds", {"DOCKERHUB_CREDS_USR": "builder"})


def test_checkout_verifies_existing_workspace(config: PipelineConfig) -> None:
    runner = RecordingRunner()
    CheckoutStage().run(config, runner, {})
    assert runner.calls[0]["args"] == ["git", "-C", str(config.workspace), "rev-parse", "HEAD"]


def test_checkout_clones_repository(tmp_path: Path) -> None:
    config = PipelineConfig(
        image="team/calculator",
        credentials_id="creds",
        workspace=tmp_path / "src",
        repository="https://example.com/team/calculator.git",
        branch="release",
    )
    runner = RecordingRunner()
    CheckoutStage().run(config, runner, {})
    assert runner.calls[0]["args"] == [
        "git", "clone", "--branch", "release", "--depth", "1",
        "https://example.com/team/calculator.git", str(tmp_path / "src"),
    ]


def test_build_image_command(config: PipelineConfig) -> None:
    runner = RecordingRunner()
    BuildImageStage().run(config, runner, {})
    assert runner.calls[0]["args"] == ["docker", "build", "-t", "team/calculator:1.0", str(config.workspace)]


def test_authenticate_passes_password_on_stdin(config: PipelineConfig) -> None:
    """The password is written to stdin and never appears in the arguments."""
    runner = RecordingRunner()
    AuthenticateStage().run(config, runner, CREDENTIALS)
    call = runner.calls[0]
    assert call["args"] == ["docker", "login", "-u", "builder", "--password-stdin"]
    assert call["input_text"] == "s3cret"
    assert "s3cret" not in call["args"]


def test_authenticate_with_registry(tmp_path: Path) -> None:
    config = PipelineConfig(
        image="team/calculator", credentials_id="dockerhub-creds", registry="registry.example.com"
    )
    runner = RecordingRunner()
    AuthenticateStage().run(config, runner, CREDENTIALS)
    assert runner.calls[0]["args"][:3] == ["docker", "login", "registry.example.com"]


def test_authenticate_without_credentials_does_not_run_docker(config: PipelineConfig) -> None:
    runner = RecordingRunner()
    with pytest.raises(CredentialsError):
        AuthenticateStage().run(config, runner, {})
    assert runner.calls == []


def test_push_image_command(config: PipelineConfig) -> None:
    runner = RecordingRunner()
    PushImageStage().run(config, runner, {})
    assert runner.calls[0]["args"] == ["docker", "push", "team/calculator:1.0"]


def test_non_zero_exit_raises_stage_failed(config: PipelineConfig) -> None:
    runner = RecordingRunner(returncode=1, stderr="step 1/4\nERROR: failed to solve\n")
    with pytest.raises(StageFailedError) as exc_info:
        BuildImageStage().run(config, runner, {})
    assert exc_info.value.returncode == 1
    assert "ERROR: failed to solve" in str(exc_info.value)


def test_missing_program_raises_stage_failed(config: PipelineConfig) -> None:
    with pytest.raises(StageFailedError, match="could not run 'docker'"):
        PushImageStage().run(config, MissingProgramRunner(), {})


def test_default_stage_order() -> None:
    assert [stage.name for stage in default_stages()] == ["Checkout", "Build Image", "Authenticate", "Push Image"]


def test_resolve_credentials_normalises_every_separator() -> None:
    """Dots and dashes in the reference both map to underscores."""
    environ = {"DOCKER_HUB_CREDS_USR": "builder", "DOCKER_HUB_CREDS_PSW": "s3cret"}
    assert resolve_credentials("docker.hub-creds", environ) == ("builder", "s3cret")
