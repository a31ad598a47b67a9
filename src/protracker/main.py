"""Application entry point for the ProTracker server."""

from protracker.app import App
from protracker.config import Config
from protracker.logging import setup_logging
from protracker.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
