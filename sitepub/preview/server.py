"""
HTTP front end for the preview handler.

One thread per request (``ThreadingHTTPServer``). Access logs go to the
module logger at DEBUG instead of stderr.
"""

import logging
import os
import shutil
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Type

from .handler import PreviewHandler, PreviewResponse

logger = logging.getLogger(__name__)


def make_request_handler(preview: PreviewHandler) -> Type[BaseHTTPRequestHandler]:
    """Build a ``BaseHTTPRequestHandler`` class bound to ``preview``."""

    class PreviewRequestHandler(BaseHTTPRequestHandler):
        server_version = "sitepub-preview"

        def _dispatch(self, send_body: bool):
            response = preview.handle(self.command, self.headers.get("Host", ""), self.path)
            self._send(response, send_body)

        def _send(self, response: PreviewResponse, send_body: bool):
            if response.file_path is not None:
                try:
                    f = open(response.file_path, "rb")
                except OSError:
                    response = PreviewResponse.error(404)
                else:
                    with f:
                        size = os.fstat(f.fileno()).st_size
                        self._send_headers(response, size)
                        if send_body:
                            shutil.copyfileobj(f, self.wfile)
                    return

            self._send_headers(response, len(response.body))
            if send_body:
                self.wfile.write(response.body)

        def _send_headers(self, response: PreviewResponse, length: int):
            self.send_response(response.status)
            self.send_header("Content-Type", response.content_type)
            self.send_header("Content-Length", str(length))
            for name, value in response.headers.items():
                self.send_header(name, value)
            self.end_headers()

        def do_GET(self):
            self._dispatch(send_body=True)

        def do_HEAD(self):
            self._dispatch(send_body=False)

        def __getattr__(self, name):
            # Any other verb (POST, PATCH, OPTIONS, ...) goes through the
            # handler too, so it gets the host check and a 405 instead of 501
            if name.startswith("do_"):
                return lambda: self._dispatch(send_body=True)
            raise AttributeError(name)

        def log_message(self, format, *args):
            logger.debug(format % args)

    return PreviewRequestHandler


def create_preview_server(preview: PreviewHandler, bind: str = "127.0.0.1",
                          port: int = 8080) -> ThreadingHTTPServer:
    """Create (but do not start) a preview server. ``port=0`` picks a free port."""
    server = ThreadingHTTPServer((bind, port), make_request_handler(preview))
    server.daemon_threads = True
    return server


def run_preview_server(preview: PreviewHandler, bind: str = "127.0.0.1", port: int = 8080):
    """Serve until interrupted."""
    server = create_preview_server(preview, bind, port)
    host, actual_port = server.server_address[:2]
    logger.info(f"Preview server listening on http://{host}:{actual_port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Preview server stopped")
    finally:
        server.server_close()
