import argparse

import uvicorn


def main(args):
    uvicorn.run("scratchfiles.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="scratchfiles: temp file tracker service")
    parser.add_argument("--host", "-H", type=str,
                        default="0.0.0.0", help="Host to run the server on")
    parser.add_argument("--port", "-p", type=int,
                        default=8000, help="Port to run the server on")
    parser.add_argument("--reload", action="store_true",
                        help="Reload on source changes")
    args = parser.parse_args()

    main(args)
