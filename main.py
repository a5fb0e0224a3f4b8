"""Echoes of the Void launcher. Serves the API or plays in the terminal."""

import argparse
import asyncio
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")


def main():
    from echoes.config import load_settings

    settings = load_settings()

    parser = argparse.ArgumentParser(description="Echoes of the Void launcher")
    parser.add_argument("--play", action="store_true",
                        help="Play in the terminal instead of serving the API")
    parser.add_argument("--world", default=None,
                        help="Starting world (horror, cyberpunk, fantasy)")
    parser.add_argument("--offline", action="store_true",
                        help="Use the offline echo narrator (no API key needed)")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--reload", action="store_true",
                        help="Restart the API server on code changes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # The uvicorn app re-reads the environment, so overrides go through it.
    if args.world:
        os.environ["ECHOES_WORLD"] = args.world
    if args.offline:
        os.environ["ECHOES_OFFLINE"] = "1"
    settings = load_settings()

    if args.play:
        from echoes.app import build_orchestrator
        from echoes.terminal import play

        # Keep log records from interleaving with the story text.
        if not args.verbose:
            logging.getLogger().setLevel(logging.WARNING)
        try:
            asyncio.run(play(build_orchestrator(settings)))
        except KeyboardInterrupt:
            print("\nThe void closes behind you.")
        return

    import uvicorn

    print(f"Starting Echoes of the Void API on http://{args.host}:{args.port} ...")
    uvicorn.run("echoes.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
