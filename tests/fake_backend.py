"""
A stand-in for the Hudson release used by the end-to-end tests.

It binds an HTTP server to a free port on 127.0.0.1, writes the handshake file
named by HUDSON_HANDSHAKE_PATH and answers GET /healthz with 200 until killed.
"""
import os
import sys
import json
from http.server import BaseHTTPRequestHandler, HTTPServer


class HealthHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        status = 200 if self.path == "/healthz" else 404
        body = json.dumps({"status": "ok"}).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


def main():
    server = HTTPServer(("127.0.0.1", 0), HealthHandler)
    port = server.server_address[1]

    print(f"HUDSON_ENABLE_NEON={os.environ.get('HUDSON_ENABLE_NEON')}", flush=True)
    print(f"args={sys.argv[1:]}", flush=True)

    handshake_path = os.environ["HUDSON_HANDSHAKE_PATH"]
    tmp_path = handshake_path + ".tmp"
    with open(tmp_path, "w") as f:
        json.dump({"port": port}, f)
    os.replace(tmp_path, handshake_path)

    server.serve_forever()


if __name__ == "__main__":
    main()
