"""Entry point for `python -m reprogistry`."""


def main() -> None:
    from .cli import cli

    cli()


if __name__ == "__main__":
    main()
