import importlib
import sys


COMMANDS = {
    "export": "sqlscripter.export",
    "object": "sqlscripter.show",
}


def _print_usage() -> None:
    print(
        "\n".join(
            [
                "usage:",
                "  sqlscripter <command> [args]",
                "  sqlscripter help <command>",
                "  sqlscripter -h | --help",
                "",
                "commands:",
                "  export    Script logins, jobs and every user database to a .sql tree",
                "  object    Script a single object by name",
            ]
        )
    )


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] in {"-h", "--help", "help"}:
        if len(argv) == 2 and argv[0] == "help":
            cmd, args = argv[1], ["-h"]
        else:
            _print_usage()
            return 0
    else:
        cmd, args = argv[0], argv[1:]

    if cmd not in COMMANDS:
        print(f"Unknown command: {cmd}\n")
        _print_usage()
        return 2

    module = importlib.import_module(COMMANDS[cmd])
    return module.main(args)


if __name__ == "__main__":
    raise SystemExit(main())
