"""Entry point: validates the topic, runs the self-healing workflow, writes a report."""

import sys

from gengame.agents.debugger import GameDebugger
from gengame.agents.engineer import GameEngineer
from gengame.config import get_config, project_path
from gengame.orchestrator import Orchestrator
from gengame.qa.validator import Validator
from gengame.repository import JsonGameRepository
from gengame.state import LogEntry
from gengame.utils.formatter import write_report


def _print_log(entry: LogEntry) -> None:
    print(f"[{entry['agent']}] {entry['message']}")


def run(topic: str, save: bool = False, seed: int | None = None) -> int:
    """Run one workflow for ``topic``. Returns a process exit code.

    Args:
        topic: The news topic or concept to turn into a game.
        save: Store the game in the repository if it deploys.
        seed: Fixed seed for input fuzzing and the sandbox RNG.
    """
    config = get_config()
    orchestrator = Orchestrator(
        generator=GameEngineer(),
        fixer=GameDebugger(),
        validator=Validator.from_config(seed=seed),
        log_sink=_print_log,
    )

    final_state = orchestrator.run(topic)

    output_path = write_report(final_state)
    print(f"[GENGAME] Status: {final_state['status']}", file=sys.stderr)
    print(f"[GENGAME] Validation attempts: {final_state['attempts']}", file=sys.stderr)
    print(f"[GENGAME] Report written to: {output_path}", file=sys.stderr)

    if orchestrator.artifact is None:
        print(f"[GENGAME] {final_state['error']}", file=sys.stderr)
        return 1

    if save:
        repository = JsonGameRepository(project_path(config.get("repository_path", "./output/games.json")))
        saved = repository.save(orchestrator.artifact)
        print(f"[GENGAME] Saved as {saved.id}", file=sys.stderr)
    return 0


def main() -> None:
    """CLI entry point — accepts the topic as arguments or from stdin."""
    args = sys.argv[1:]
    save = False
    seed = None

    if "--save" in args:
        save = True
        args.remove("--save")

    if "--seed" in args:
        i = args.index("--seed")
        try:
            seed = int(args[i + 1])
        except (IndexError, ValueError):
            print("--seed expects an integer.", file=sys.stderr)
            sys.exit(2)
        del args[i:i + 2]

    if args:
        topic = " ".join(args)
    else:
        print("Enter a topic (Ctrl+D / Ctrl+Z to submit):")
        topic = sys.stdin.read()

    try:
        code = run(topic, save=save, seed=seed)
    except ValueError as exc:
        print(f"[GENGAME] {exc}", file=sys.stderr)
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
