"""Main CLI entry point for webarchiver."""

import click


def get_version() -> str:
    """Get the current version."""
    try:
        from webarchiver import __version__

        return __version__
    except ImportError:
        return "unknown"


@click.group()
@click.version_option(version=get_version(), prog_name="webarchiver")
@click.pass_context
def main(ctx: click.Context) -> None:
    """webarchiver - shrink static sites by deduplicating their text.

    \b
    Examples:
        webarchiver archive 'site/**/*' -o archive
        webarchiver archive 'site/**/*' --inplace --passes 3
        webarchiver archive 'site/**/*' -o out --just-copy 'site/feeds/**'
    """
    ctx.ensure_object(dict)


# Import subcommands - these register themselves with the main group
def _register_commands() -> None:
    """Register all subcommands."""
    from . import archive  # noqa: F401


_register_commands()

if __name__ == "__main__":
    main()
