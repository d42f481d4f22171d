"""
Minimal HTTP server to try devserve with.

devserve appends --port N (and --host H) to the command line.
"""

import argparse
from http.server import HTTPServer, SimpleHTTPRequestHandler


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8787)
    args, _unknown = parser.parse_known_args()

    server = HTTPServer((args.host, args.port), SimpleHTTPRequestHandler)
    print(f"Listening on http://{args.host}:{args.port}", flush=True)
    server.serve_forever()


if __name__ == "__main__":
    main()
