"""
Command-line entrypoint used locally, by CI and by the Docker image.

Subcommands:
- serve:    run the HTTP service delivering the calculator page
- eval:     evaluate expressions from the command line
- pipeline: checkout, build, authenticate and push the container image
"""
import argparse
from pathlib import Path
import sys
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError
import uvicorn

from calculator_site.common.config import ServerSettings
from calculator_site.common.exceptions import ExpressionError
from calculator_site.common.logger import configure_logging, logger
from calculator_site.common.parser import ExpressionParser
from calculator_site.pipeline.runner import Pipeline
from calculator_site.pipeline.stages import PipelineConfig


class EvalArgs(BaseModel):
    """
    Pydantic model used to validate the eval subcommand arguments.

    Attributes
    ----------
    expressions : List[str]
        Expressions to evaluate, in order.
    """

    expressions: List[str] = Field(..., min_length=1)


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser with its three subcommands.

    :return: Configured parser
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(prog="calculator-site", description="Calculator web page and its delivery tooling")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Serve the calculator page over HTTP")
    serve.add_argument("--host", default=None, help="Address to bind (env: CALCULATOR_HOST)")
    serve.add_argument("--port", default=None, help="Port to listen on (env: CALCULATOR_PORT)")
    serve.add_argument("--log-level", default=None, help="Logging level (env: CALCULATOR_LOG_LEVEL)")

    evaluate = subparsers.add_parser(
        "eval",
        help="Evaluate arithmetic expressions",
        epilog="Expressions may start with a sign, e.g. '-5+2'.",
    )
    evaluate.add_argument("expressions", nargs="+", help="Expressions such as '3+4*2'")

    pipeline = subparsers.add_parser("pipeline", help="Build the container image and push it to a registry")
    pipeline.add_argument("--image", required=True, help="Image repository name")
    pipeline.add_argument("--tag", default="latest", help="Image tag")
    pipeline.add_argument("--credentials-id", required=True, help="Registry credential reference (<ID>_USR/<ID>_PSW)")
    pipeline.add_argument("--registry", default=None, help="Registry host, Docker Hub when omitted")
    pipeline.add_argument("--workspace", default=".", help="Directory holding the Dockerfile")
    pipeline.add_argument("--repository", default=None, help="Git repository to clone into the workspace")
    pipeline.add_argument("--branch", default="main", help="Branch to clone")

    return parser


def run_server(settings: ServerSettings) -> None:
    """
    Start the calculator HTTP service.

    Blocks until the server is stopped.
    """
    configure_logging(settings.log_level)
    logger.info(f"🖥️ Starting server on {settings.host}:{settings.port}")
    uvicorn.run(
        "calculator_site.web.app:app",
        host=str(settings.host),
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def evaluate_expressions(args: EvalArgs) -> int:
    """
    Print the result of each expression, one per line.

    :return: 0 if every expression evaluated, 1 otherwise
    :rtype: int
    """
    exit_code = 0
    for expr in args.expressions:
        try:
            result = ExpressionParser.evaluate(expr)
        except ExpressionError as exc:
            print(f"{expr} -> ERROR: {exc}")
            exit_code = 1
            continue
        print(f"{expr} = {ExpressionParser.format_result(result)}")
    return exit_code


def run_pipeline(config: PipelineConfig) -> int:
    """
    Run the build pipeline and print a per-stage summary.

    :return: 0 if every stage succeeded, 1 otherwise
    :rtype: int
    """
    result = Pipeline(config=config).run()
    for stage in result.stages:
        line = f"{stage.name}: {stage.status.value}"
        if stage.message:
            line += f" ({stage.message})"
        print(line)
    return 0 if result.succeeded else 1


def separate_eval_expressions(argv: List[str]) -> List[str]:
    """
    Insert "--" after the eval subcommand so signed expressions stay positional.

    Without it argparse reads "-5+2" as an unknown option.

    :param List[str] argv: Command-line arguments without the program name

    :return: Arguments safe to hand to argparse
    :rtype: List[str]
    """
    if argv[:1] != ["eval"] or argv[1:2] in (["--"], ["-h"], ["--help"]):
        return argv
    return ["eval", "--", *argv[1:]]


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function executed from the command line, CI or Docker.
    """
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else argv
    args = parser.parse_args(separate_eval_expressions(argv))

    try:
        if args.command == "serve":
            settings = ServerSettings.from_env(host=args.host, port=args.port, log_level=args.log_level)
            run_server(settings)
            return 0

        configure_logging(ServerSettings.from_env().log_level)

        if args.command == "eval":
            return evaluate_expressions(EvalArgs(expressions=args.expressions))

        config = PipelineConfig(
            image=args.image,
            tag=args.tag,
            credentials_id=args.credentials_id,
            registry=args.registry,
            workspace=Path(args.workspace),
            repository=args.repository,
            branch=args.branch,
        )
    except ValidationError as exc:
        parser.error(str(exc))

    return run_pipeline(config)


if __name__ == "__main__":
    sys.exit(main())
