import argparse
import sys
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .bloch_sim import GATE_DESCRIPTIONS, InvalidGateError, gate_from_name, visualize_probabilities
from .challenges import CHALLENGES, UnknownChallengeError
from .config import Settings
from .logging_config import setup_logging
from .session import Session

SHELL_HELP = """Commands:
  X Y Z H S T      apply a gate
  reset 0|1        jump to |0> or |1>
  undo             step back
  check ID         check a challenge
  challenges       list challenges
  state            show the current readout
  probs            show measurement odds
  help             this text
  quit             leave the shell"""


def format_readout(session: Session) -> str:
    readout = session.engine.readout()
    display = readout["display"]
    label = f"  {readout['label']}" if readout["label"] else ""
    return f"{display['vector']}  θ={display['theta']}  φ={display['phi']}{label}"


def _watch(session: Session) -> None:
    session.engine.subscribe(lambda: print(format_readout(session)))


def _print_challenges(completed: Iterable[str] = ()) -> None:
    done = set(completed)
    for i, c in enumerate(CHALLENGES, 1):
        mark = " [done]" if c.id in done else ""
        print(f"{i}. {c.title} ({c.id}){mark}")
        print(f"   {c.description}")


def _check(session: Session, challenge_id: str) -> bool:
    result = session.check_challenge(challenge_id)
    print(f"{challenge_id}: {result.message}")
    return result.passed


def cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    for name in args.gates:
        try:
            gate_from_name(name)
        except InvalidGateError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
    session = Session(history_limit=settings.history_limit)
    if args.start == "1":
        session.reset_to(1)
    print(format_readout(session))
    _watch(session)
    for name in args.gates:
        session.apply_gate(name)
    if args.check:
        try:
            return 0 if _check(session, args.check) else 1
        except UnknownChallengeError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
    return 0


def run_shell(lines: Iterable[str], session: Optional[Session] = None) -> Session:
    """Run shell commands from ``lines`` against ``session`` and return it."""
    session = session or Session()
    _watch(session)
    print(format_readout(session))
    for raw in lines:
        words = raw.strip().split()
        if not words:
            continue
        cmd, rest = words[0], words[1:]
        if cmd.upper() in GATE_DESCRIPTIONS and not rest:
            session.apply_gate(cmd.upper())
        elif cmd == "reset" and rest and rest[0] in ("0", "1"):
            session.reset_to(int(rest[0]))
        elif cmd == "undo":
            if not session.undo():
                print("nothing to undo")
        elif cmd == "check" and rest:
            try:
                _check(session, rest[0])
            except UnknownChallengeError as exc:
                print(f"error: {exc}")
        elif cmd == "challenges":
            _print_challenges(session.completed)
        elif cmd == "state":
            print(format_readout(session))
        elif cmd == "probs":
            visualize_probabilities(session.engine.current_vector())
        elif cmd == "help":
            print(SHELL_HELP)
        elif cmd in ("quit", "exit"):
            break
        else:
            print(f"unknown command: {raw.strip()} (try 'help')")
    return session


def _stdin_lines() -> Iterable[str]:
    while True:
        try:
            yield input("bloch> ")
        except EOFError:
            return


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Single qubit Bloch sphere playground"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from BLOCHLAB_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("gates", help="List the available gates")
    sub.add_parser("challenges", help="List the challenges")
    run = sub.add_parser("run", help="Apply gates and print the readout after each step")
    run.add_argument("gates", nargs="*", help="Gate names, applied left to right")
    run.add_argument("--from", dest="start", choices=["0", "1"], default="0", help="Starting basis state")
    run.add_argument("--check", help="Challenge id to check at the end")
    sub.add_parser("shell", help="Interactive command shell")
    openapi = sub.add_parser("openapi", help="Write the HTTP API schema as YAML")
    openapi.add_argument("path", nargs="?", default="openapi.yaml")
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        if args.log_level:
            settings = Settings(**{**settings.model_dump(), "log_level": args.log_level})
    except ValidationError as exc:
        problems = "; ".join(err["msg"] for err in exc.errors())
        print(f"error: invalid settings: {problems}", file=sys.stderr)
        return 2
    setup_logging(settings.log_level_value, settings.log_file)

    if args.command == "gates":
        for name, text in GATE_DESCRIPTIONS.items():
            print(f"{name}  {text}")
    elif args.command == "challenges":
        _print_challenges()
    elif args.command == "run":
        return cmd_run(args, settings)
    elif args.command == "shell":
        print(SHELL_HELP)
        run_shell(_stdin_lines(), Session(history_limit=settings.history_limit))
    elif args.command == "openapi":
        from .api import generate_openapi_yaml

        generate_openapi_yaml(args.path)
        print(f"wrote {args.path}")
    else:
        parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
