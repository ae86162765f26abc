"""Publish plugins for Inkwell.

Publish plugins are told about pages written by a regeneration pass. Enable
them in inkwell.yaml with their configuration::

    requires:
      - inkwell.storage
      - inkwell.outputs
      - inkwell.feeds
      - inkwell.publishers:ping: [http://rpc.pingomatic.com/]
      - inkwell.publishers:email:
          smtp_server: mail.example.com
          to: [me@example.com]
      - inkwell.publishers:command:
          command: [rsync, -a, htdocs/, host:/var/www/]
          watch: [index]

Every instance owns its configuration; nothing is shared between weblogs
served by the same process.

Key classes:
- BasePublish: Common constructor and weblog back-reference.
- PingPublish: XML-RPC weblogUpdates.ping to blog directories.
- EmailPublish: Mails recipients when entry pages change.
- CommandPublish: Runs a command for each written page.
"""

from __future__ import annotations

import logging
import shlex
import smtplib
import subprocess
import weakref
import xmlrpc.client
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import format_datetime
from typing import Any
from urllib.parse import urlparse

from .errors import ConfigurationError
from .registry import PluginDescriptor, PluginRole
from .utils import join_root_url

logger = logging.getLogger(__name__)


class BasePublish(ABC):
    """Base class for publish plugins.

    Holds a weak reference to the weblog: the weblog owns its registry, which
    owns this plugin, so the plugin must not keep the weblog alive.
    """

    watches: frozenset[str] = frozenset()

    def __init__(self, weblog: Any, config: Any = None):
        self._weblog = weakref.ref(weblog) if weblog is not None else None
        self.config = config

    @property
    def weblog(self) -> Any:
        weblog = self._weblog() if self._weblog is not None else None
        if weblog is None:
            raise RuntimeError(f"{type(self).__name__} is not attached to a weblog")
        return weblog

    def watch(self) -> set[str]:
        return set(self.watches)

    @abstractmethod
    def publish(self, page_id: str) -> None:
        """Announce that the page page_id was written."""
        ...


class PingPublish(BasePublish):
    """Pings weblog directories when index pages change.

    Config: a list of XML-RPC endpoint URLs, or a mapping with ``urls``.
    """

    watches = frozenset({"index"})

    def __init__(self, weblog: Any, config: Any = None):
        super().__init__(weblog, config)
        if isinstance(config, dict):
            urls = config.get("urls") or []
        elif isinstance(config, str):
            urls = [config]
        else:
            urls = list(config or [])
        if not urls:
            raise ConfigurationError("The ping plugin needs at least one URL to ping.")
        self.urls = [str(url) for url in urls]

    def server_for(self, url: str) -> xmlrpc.client.ServerProxy:
        return xmlrpc.client.ServerProxy(url)

    def publish(self, page_id: str) -> None:
        weblog = self.weblog
        failures = []
        for url in self.urls:
            try:
                response = self.server_for(url).weblogUpdates.ping(weblog.title, weblog.link)
            except (OSError, xmlrpc.client.Error) as exc:
                logger.warning("Ping to %s failed: %s", url, exc)
                failures.append(f"{url}: {exc}")
                continue
            if isinstance(response, dict) and response.get("flerror"):
                failures.append(f"{url}: {response.get('message', 'ping rejected')}")
                continue
            logger.info("Pinged %s for %s", url, page_id)
        if failures:
            raise RuntimeError("; ".join(failures))


class EmailPublish(BasePublish):
    """Mails a notice when entry pages are written.

    Config keys: ``smtp_server`` (required), ``smtp_port`` (25),
    ``smtp_user`` and ``smtp_password`` (login when set), ``starttls``,
    ``from`` (defaults to inkwell@<weblog host>) and ``to`` (defaults to
    the weblog authors that have an email address).
    """

    watches = frozenset({"entry"})

    def __init__(self, weblog: Any, config: Any = None):
        super().__init__(weblog, config)
        if not isinstance(config, dict) or not config.get("smtp_server"):
            raise ConfigurationError("The email plugin requires an SMTP server.")
        self.smtp_server = str(config["smtp_server"])
        self.smtp_port = int(config.get("smtp_port") or 25)
        self.smtp_user = config.get("smtp_user")
        self.smtp_password = config.get("smtp_password")
        self.starttls = bool(config.get("starttls", False))
        host = urlparse(weblog.link or "").hostname or "localhost"
        self.from_address = config.get("from") or f"inkwell@{host}"
        recipients = config.get("to")
        if recipients is None:
            recipients = [
                author["email"]
                for author in (weblog.authors or {}).values()
                if isinstance(author, dict) and author.get("email")
            ]
        elif isinstance(recipients, str):
            recipients = [recipients]
        if not recipients:
            raise ConfigurationError("The email plugin has nobody to notify.")
        self.recipients = list(recipients)

    def build_message(self, page_id: str) -> EmailMessage:
        weblog = self.weblog
        url = join_root_url(weblog.link, page_id)
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = ", ".join(self.recipients)
        message["Subject"] = f"{weblog.title} updated: {page_id}"
        message["Date"] = format_datetime(datetime.now(timezone.utc))
        message.set_content(
            f"The page {page_id} on {weblog.title} has been published.\n\n{url}\n"
        )
        return message

    def publish(self, page_id: str) -> None:
        message = self.build_message(page_id)
        with smtplib.SMTP(self.smtp_server, self.smtp_port) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.smtp_user:
                smtp.login(self.smtp_user, self.smtp_password or "")
            smtp.send_message(message)
        logger.info("Mailed %d recipient(s) about %s", len(self.recipients), page_id)


class CommandPublish(BasePublish):
    """Runs a command for every written page it watches.

    The page's output file is appended as the last argument and the command
    runs from the weblog root. Config keys: ``command`` (string or list),
    ``watch`` (page categories, default index).
    """

    def __init__(self, weblog: Any, config: Any = None):
        super().__init__(weblog, config)
        if isinstance(config, (str, list)):
            config = {"command": config}
        if not isinstance(config, dict) or not config.get("command"):
            raise ConfigurationError("The command plugin requires a command.")
        command = config["command"]
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        watch = config.get("watch") or ["index"]
        self.watches = frozenset([watch] if isinstance(watch, str) else watch)

    def publish(self, page_id: str) -> None:
        weblog = self.weblog
        target = weblog.output_path / page_id
        result = subprocess.run(
            [*self.command, str(target)],
            cwd=weblog.root,
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise RuntimeError(
                f"{self.command[0]} exited with {result.returncode}: {result.stderr.strip()}"
            )


PLUGINS = [
    PluginDescriptor(PluginRole.PUBLISH, "ping", PingPublish),
    PluginDescriptor(PluginRole.PUBLISH, "email", EmailPublish),
    PluginDescriptor(PluginRole.PUBLISH, "command", CommandPublish),
]
