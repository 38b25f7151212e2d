"""Build pipeline stages: checkout, build image, authenticate, push image."""
from abc import ABC, abstractmethod
from pathlib import Path
import re
import subprocess
from typing import List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from calculator_site.common.exceptions import CredentialsError, StageFailedError
from calculator_site.common.logger import logger

# Optional registry host (with port), then lower-case path components
IMAGE_PATTERN = (
    r"^(?:[A-Za-z0-9.-]+(?::[0-9]+)?/)?"
    r"[a-z0-9]+(?:[._-][a-z0-9]+)*(?:/[a-z0-9]+(?:[._-][a-z0-9]+)*)*$"
)
TAG_PATTERN = r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$"


class PipelineConfig(BaseModel):
    """Parameters of a single pipeline run."""

    # The configuration must not change while stages are running
    model_config = ConfigDict(frozen=True)

    image: str = Field(..., pattern=IMAGE_PATTERN, description="Image repository name")
    tag: str = Field(default="latest", pattern=TAG_PATTERN, description="Image tag")
    credentials_id: str = Field(
        ..., pattern=r"^[A-Za-z0-9_.-]+$", description="Reference to the registry username/password pair"
    )
    registry: Optional[str] = Field(default=None, description="Registry host, Docker Hub when unset")
    workspace: Path = Field(default=Path("."), description="Directory holding the sources and Dockerfile")
    repository: Optional[str] = Field(default=None, description="Git repository cloned into the workspace")
    branch: str = Field(default="main", min_length=1, description="Branch checked out from the repository")

    @property
    def image_ref(self) -> str:
        """Full image reference, e.g. "team/calculator:1.0"."""
        return f"{self.image}:{self.tag}"


class CommandResult(BaseModel):
    """Outcome of an external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""


class CommandRunner:
    """Run external commands with subprocess, capturing their output."""

    def run(
        self,
        args: Sequence[str],
        input_text: Optional[str] = None,
        cwd: Optional[Path] = None,
    ) -> CommandResult:
        """
        Run a command to completion.

        :param Sequence[str] args: Program and arguments
        :param str input_text: Text written to the command's stdin
        :param Path cwd: Working directory

        :return: Exit code and captured output
        :rtype: CommandResult
        :raises OSError: If the program cannot be started
        """
        proc = subprocess.run(
            list(args),
            input=input_text,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        return CommandResult(returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


def resolve_credentials(credentials_id: str, environ: Mapping[str, str]) -> Tuple[str, str]:
    """
    Resolve a credential reference to a (username, password) pair.

    The pair is read from <ID>_USR and <ID>_PSW, where <ID> is the reference
    upper-cased with every non-alphanumeric character replaced by "_".

    :param str credentials_id: Credential reference, e.g. "dockerhub-creds"
    :param Mapping environ: Environment holding the credential variables

    :return: Username and password
    :rtype: Tuple[str, str]
    :raises CredentialsError: If either variable is missing or empty
    """
    prefix = re.sub(r"[^A-Za-z0-9]", "_", credentials_id).upper()
    names = (f"{prefix}_USR", f"{prefix}_PSW")
    missing = [name for name in names if not environ.get(name)]
    if missing:
        raise CredentialsError(f"Credential {credentials_id!r} is not available: missing {', '.join(missing)}")
    return environ[names[0]], environ[names[1]]


class Stage(ABC):
    """A named step of the pipeline."""

    name: str = ""

    @abstractmethod
    def run(self, config: PipelineConfig, runner: CommandRunner, environ: Mapping[str, str]) -> CommandResult:
        """
        Execute the stage.

        :raises PipelineError: If the stage fails
        """

    def _execute(
        self,
        runner: CommandRunner,
        args: List[str],
        input_text: Optional[str] = None,
        cwd: Optional[Path] = None,
    ) -> CommandResult:
        """Run one command, raising StageFailedError if it cannot start or exits non-zero."""
        logger.info(f"🐚 [{self.name}] {' '.join(args)}")
        try:
            result = runner.run(args, input_text=input_text, cwd=cwd)
        except OSError as exc:
            raise StageFailedError(f"{self.name}: could not run {args[0]!r}: {exc}") from exc

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else "no output"
            raise StageFailedError(
                f"{self.name}: {args[0]} exited with code {result.returncode}: {detail}",
                returncode=result.returncode,
            )
        return result


class CheckoutStage(Stage):
    """Clone the repository, or confirm the workspace already is a checkout."""

    name = "Checkout"

    def run(self, config: PipelineConfig, runner: CommandRunner, environ: Mapping[str, str]) -> CommandResult:
        if config.repository:
            args = [
                "git", "clone", "--branch", config.branch, "--depth", "1",
                config.repository, str(config.workspace),
            ]
            return self._execute(runner, args)
        return self._execute(runner, ["git", "-C", str(config.workspace), "rev-parse", "HEAD"])


class BuildImageStage(Stage):
    """Build the image from the workspace Dockerfile."""

    name = "Build Image"

    def run(self, config: PipelineConfig, runner: CommandRunner, environ: Mapping[str, str]) -> CommandResult:
        return self._execute(runner, ["docker", "build", "-t", config.image_ref, str(config.workspace)])


class AuthenticateStage(Stage):
    """Log in to the registry, passing the password on stdin."""

    name = "Authenticate"

    def run(self, config: PipelineConfig, runner: CommandRunner, environ: Mapping[str, str]) -> CommandResult:
        username, password = resolve_credentials(config.credentials_id, environ)
        args = ["docker", "login"]
        if config.registry:
            args.append(config.registry)
        args.extend(["-u", username, "--password-stdin"])
        return self._execute(runner, args, input_text=password)


class PushImageStage(Stage):
    """Push the built image to the registry."""

    name = "Push Image"

    def run(self, config: PipelineConfig, runner: CommandRunner, environ: Mapping[str, str]) -> CommandResult:
        return self._execute(runner, ["docker", "push", config.image_ref])


def default_stages() -> List[Stage]:
    """Return the four stages in execution order."""
    return [CheckoutStage(), BuildImageStage(), AuthenticateStage(), PushImageStage()]
