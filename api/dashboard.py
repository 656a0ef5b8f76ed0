"""
Dashboard and Bridge Webhook HTTP Handler

Serves the bot dashboard (status page, pairing form, live log viewer)
and receives connection/message events from the WhatsApp bridge.

Routes:
    GET  /            status page
    GET  /status      current status as JSON
    GET  /pair        pairing form
    POST /pair        request a pairing code for a phone number
    GET  /logs        live log viewer
    GET  /events      buffered log records as JSON (?since=<seq>)
    POST /webhook     bridge events
"""

import asyncio
import html
import json
import logging
import traceback
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from wabot.events import EventHub
from wabot.message_builder import MessageBuilder
from wabot.session import BotSession
from wabot.transport import parse_event

logger = logging.getLogger(__name__)

PAIRING_TIMEOUT = 60

# Routes whose access is worth a dashboard log record
LOGGED_PAGES = frozenset(["/", "/pair", "/logs"])

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>{title}</title></head>
  <body>
    <h1>{title}</h1>
    {body}
  </body>
</html>
"""

INDEX_BODY = """<p>Status : <span id="status">Vérification...</span></p>
    <p>Utilisateurs : <span id="users">0</span></p>
    <a href="/pair">Pairer un appareil</a> | <a href="/logs">Voir logs en temps réel</a>
    <script>
      async function refresh() {
        const res = await fetch('/status');
        const data = await res.json();
        document.getElementById('status').innerText = data.connected ? 'Connecté' : 'Déconnecté';
        document.getElementById('users').innerText = data.users;
      }
      refresh();
      setInterval(refresh, 3000);
    </script>"""

PAIR_FORM_BODY = """<form action="/pair" method="post">
      <label>Numéro (international sans +) :</label><br>
      <input type="text" name="number" placeholder="ex: 24176209643" required><br><br>
      <button type="submit">Générer code</button>
    </form>"""

LOGS_BODY = """<div id="logs" style="border:1px solid #ccc; padding:10px; height:400px; overflow-y:scroll;"></div>
    <script>
      let since = 0;
      function escapeHtml(text) {
        const div = document.createElement('div');
        div.innerText = text;
        return div.innerHTML;
      }
      async function poll() {
        const res = await fetch('/events?since=' + since);
        const data = await res.json();
        const logDiv = document.getElementById('logs');
        for (const record of data.records) {
          logDiv.innerHTML += '<p><strong>[' + escapeHtml(record.time) + '] ' +
            escapeHtml(record.type.toUpperCase()) + ':</strong> ' + escapeHtml(record.message) + '</p>';
          since = record.seq;
        }
        logDiv.scrollTop = logDiv.scrollHeight;
      }
      poll();
      setInterval(poll, 1000);
    </script>"""


def render_page(title: str, body: str) -> str:
    return PAGE_TEMPLATE.format(title=title, body=body)


def pairing_result_page(code: Optional[str]) -> str:
    shown = html.escape(code) if code else MessageBuilder.NO_PAIRING_CODE
    return render_page(
        "Code généré",
        f"<p>Code : <strong id=\"code\">{shown}</strong></p>\n"
        "    <p>Entre-le dans WhatsApp &gt; Appareils connectés.</p>",
    )


def is_valid_phone_number(number: Optional[str]) -> bool:
    """Phone numbers are international, without '+', digits only."""
    return bool(number) and number.isdigit() and number.isascii()


class DashboardHandler(BaseHTTPRequestHandler):
    """HTTP handler bound to one bot session; see make_server()."""

    session: BotSession
    hub: EventHub

    def log_message(self, format, *args):
        """Override to use our logger."""
        logger.debug("%s - %s", self.address_string(), format % args)

    def _send(self, status: int, body: str, content_type: str = "text/html; charset=utf-8") -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _send_json(self, data: Any, status: int = 200) -> None:
        self._send(status, json.dumps(data), "application/json")

    def _read_body(self) -> bytes:
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            logger.warning(f"Bad Content-Length: {self.headers.get('Content-Length')!r}")
            return b""
        if content_length <= 0:
            return b""
        return self.rfile.read(content_length)

    def do_GET(self):
        url = urlparse(self.path)
        path = url.path

        if path in LOGGED_PAGES:
            self.hub.log(f"Accès dashboard: {path} depuis {self.address_string()}", "dashboard")

        if path == "/":
            self._send(200, render_page("Dashboard Bot WhatsApp", INDEX_BODY))
        elif path == "/status":
            self._send_json(self.session.status())
        elif path == "/pair":
            self._send(200, render_page("Pairer ton bot", PAIR_FORM_BODY))
        elif path == "/logs":
            self._send(200, render_page("Logs en temps réel", LOGS_BODY))
        elif path == "/events":
            self._send_json(self._events(parse_qs(url.query)))
        else:
            self._send(404, render_page("Introuvable", "<p>Page introuvable.</p>"))

    def do_POST(self):
        path = urlparse(self.path).path
        if path == "/pair":
            self._handle_pair()
        elif path == "/webhook":
            self._handle_webhook()
        else:
            self._send(404, render_page("Introuvable", "<p>Page introuvable.</p>"))

    def _events(self, query: dict) -> dict:
        try:
            since = int(query.get("since", ["0"])[0])
        except ValueError:
            since = 0
        records = self.hub.records_since(since)
        return {
            "records": [r.to_dict() for r in records],
            "last_seq": self.hub.last_seq,
            "status": self.hub.status.to_dict(),
        }

    def _handle_pair(self) -> None:
        form = parse_qs(self._read_body().decode("utf-8", errors="replace"))
        number = form.get("number", [""])[0].strip()

        if not is_valid_phone_number(number):
            self.hub.log(f"Numéro de pairing invalide: {number!r}", "error")
            self._send(400, MessageBuilder.INVALID_NUMBER_MESSAGE, "text/plain; charset=utf-8")
            return

        try:
            future = asyncio.run_coroutine_threadsafe(
                self.session.start(number), self.session.loop
            )
            code = future.result(timeout=PAIRING_TIMEOUT)
        except Exception as e:
            logger.error(f"Pairing request failed: {e}\n{traceback.format_exc()}")
            self._send(500, MessageBuilder.PAIRING_ERROR_MESSAGE, "text/plain; charset=utf-8")
            return

        self._send(200, pairing_result_page(code))

    def _handle_webhook(self) -> None:
        try:
            payload = json.loads(self._read_body().decode("utf-8"))
            for event in parse_event(payload):
                self.session.submit(event)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in webhook: {e}")
        except Exception as e:
            logger.error(f"Webhook error: {e}\n{traceback.format_exc()}")

        # Always return 200 so the bridge does not retry
        self._send_json({"ok": True})


def make_server(session: BotSession, hub: EventHub, host: str = "", port: int = 3000) -> ThreadingHTTPServer:
    """Build a threaded dashboard server bound to a session."""
    handler = type(
        "BoundDashboardHandler",
        (DashboardHandler,),
        {"session": session, "hub": hub},
    )
    server = ThreadingHTTPServer((host, port), handler)
    server.daemon_threads = True
    return server
