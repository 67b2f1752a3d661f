##############################################################################
#
# Copyright (c) 2003 Zope Corporation and Contributors.
# All Rights Reserved.
#
# This software is subject to the provisions of the Zope Public License,
# Version 2.1 (ZPL).  A copy of the ZPL should accompany this distribution.
# THIS SOFTWARE IS PROVIDED "AS IS" AND ANY AND ALL EXPRESS OR IMPLIED
# WARRANTIES ARE DISCLAIMED, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF TITLE, MERCHANTABILITY, AGAINST INFRINGEMENT, AND FITNESS
# FOR A PARTICULAR PURPOSE.
#
##############################################################################
"""
MIME message compiler

A `MessageSpec` describes what to send; `Message` writes it out as MIME
text into a `Storage` and hands the result to a mailer.  Attachments never
pass through Python: the `file` command types them and the `base64`
command appends their encoded bytes straight into the storage file.

Layout of the compiled message:

- no attachments, one body: a single `text/plain`, `text/enriched` or
  `text/html` part;
- no attachments, several bodies: `multipart/alternative`, always in the
  order text, enriched, html;
- attachments: `multipart/mixed` holding the body (laid out as above)
  followed by one part per attachment.
"""

import base64
import logging
import os
import random
import re
import string
import subprocess
import tempfile
from contextlib import contextmanager
from email.utils import formatdate
from email.utils import make_msgid
from types import MappingProxyType

from zope.interface import implementer
from repoze.sysmail.exceptions import InvalidAttachment
from repoze.sysmail.exceptions import InvalidRecipient
from repoze.sysmail.exceptions import NotFound
from repoze.sysmail.exceptions import NotReadable
from repoze.sysmail.interfaces import IMessage
from repoze.sysmail.mailer import COMMAND_NOT_FOUND
from repoze.sysmail.mailer import SendmailMailer
from repoze.sysmail.settings import Settings
from repoze.sysmail.storage import Storage
from repoze.sysmail.storage import SUBDIRECTORY

# Line length limit of RFC 5322, CRLF excluded.
UTF8_SIZE = 998
BASE64_SIZE = 76
BOUNDARY_SIZE = 24
BOUNDARY_RANDOM = 8
CHARSET = 'utf-8'
BODY_KINDS = ('text', 'enriched', 'html')
CONTENT_TYPES = {
    'text': 'text/plain',
    'enriched': 'text/enriched',
    'html': 'text/html',
}

_ALPHANUMERIC = string.ascii_letters + string.digits
_NAME_ADDR = re.compile(r'(.+)\s<(.+)>$')
_LINE_BREAK = re.compile(r'[\r\n]')


def encode_header(value):
    """Return `value` as is when ASCII, else as one RFC 2047 'B' word."""
    if value.isascii():
        return value
    encoded = base64.b64encode(value.encode('utf-8')).decode('ascii')
    return '=?UTF-8?B?%s?=' % encoded


def encode_address(address):
    if address.isascii():
        return address
    match = _NAME_ADDR.match(address)
    if match is None:
        return address
    return '%s <%s>' % (encode_header(match.group(1)), match.group(2))


def needs_base64(data):
    """True when `data` (bytes) has a line too long for 8bit transfer."""
    if len(data) < UTF8_SIZE:
        return False
    return any(len(line) >= UTF8_SIZE for line in data.splitlines())


def wrap_base64(data):
    encoded = base64.b64encode(data).decode('ascii')
    return [encoded[i:i + BASE64_SIZE]
            for i in range(0, len(encoded), BASE64_SIZE)]


def _is_path(value):
    return isinstance(value, (str, os.PathLike))


def attachment_kind(ref):
    """Classify an attachment reference.

    Returns one of 'inline', 'path', 'named' or 'file'; raises
    `InvalidAttachment` for anything else.
    """
    if isinstance(ref, Attachment):
        return 'inline'
    if _is_path(ref):
        return 'path'
    if isinstance(ref, tuple) and len(ref) == 2 and _is_path(ref[1]):
        return 'named'
    if _is_path(getattr(ref, 'name', None)):
        return 'file'
    raise InvalidAttachment(
        'attachment must be inline data or a file path, got %r' % (ref,))


class Attachment(object):
    """Attachment held in memory."""

    def __init__(self, filename, data):
        if not isinstance(data, bytes):
            raise InvalidAttachment('inline attachment data must be bytes')
        self.filename = os.path.basename(filename)
        self.data = data

    def __repr__(self):
        return '<Attachment %s (%d bytes)>' % (self.filename, len(self.data))


class MessageSpec(object):
    """Everything needed to compile one message.

    `to` is a sequence of addresses, or a single address.  Bodies are
    given either as a `bodies` mapping keyed by 'text', 'enriched' and
    'html', or through the keyword arguments of the same names.
    `attachments` is a sequence of `Attachment` objects, file paths,
    `(display_name, path)` pairs or open files.
    """
    log = logging.getLogger(__name__)

    def __init__(self, to=(), from_=None, subject=None, bodies=None,
                 text=None, enriched=None, html=None, attachments=()):
        if isinstance(to, str):
            to = [to]
        self.to = tuple(to or ())
        self.from_ = from_
        self.subject = subject
        merged = dict(bodies or {})
        for kind, value in (('text', text),
                            ('enriched', enriched),
                            ('html', html)):
            if value is not None:
                merged[kind] = value
        unknown = sorted(set(merged) - set(BODY_KINDS))
        if unknown:
            raise ValueError('Unknown body kind: %s' % ', '.join(unknown))
        self.bodies = MappingProxyType(dict(
            (kind, value) for kind, value in merged.items()
            if value is not None))
        self.attachments = tuple(attachments or ())

    def validate(self):
        if not self.to:
            raise InvalidRecipient("Header 'To:' is empty")
        for address in (self.from_ or '',) + self.to:
            if _LINE_BREAK.search(address):
                raise InvalidRecipient(
                    "Address contains a line break: %r" % (address,))
        for ref in self.attachments:
            attachment_kind(ref)
        if not self.bodies:
            self.log.warning('Message body is empty')


@implementer(IMessage)
class Message(object):
    """See `repoze.sysmail.interfaces.IMessage`"""

    log = logging.getLogger(__name__)
    storage_factory = Storage  # allow replacement for testing.

    def __init__(self, spec, settings=None, mailer=None):
        if settings is None:
            settings = Settings()
        if mailer is None:
            mailer = SendmailMailer(settings.sendmail)
        self.spec = spec
        self.settings = settings
        self.mailer = mailer
        self.message_id = make_msgid('repoze.sysmail')
        self.date = formatdate(localtime=True)

    def as_string(self):
        self.spec.validate()
        storage = self.storage_factory(self.settings.storage)
        try:
            self._write_headers(storage)
            self._write_message(storage)
            return storage.read()
        finally:
            storage.clear()

    def deliver(self):
        self.spec.validate()
        toaddrs = ', '.join(self.spec.to)
        storage = self.storage_factory(self.settings.storage)
        try:
            self._write_headers(storage)
            self._write_message(storage)
            self._send_message(storage)
        except subprocess.CalledProcessError:
            self.log.error(
                "Error while sending mail to %s.", toaddrs, exc_info=True)
            return False
        finally:
            storage.clear()
        self.log.info("Mail to %s sent.", toaddrs)
        return True

    def _write_headers(self, storage):
        spec = self.spec
        with storage.write() as out:
            if spec.from_:
                out.puts('From: %s' % encode_address(spec.from_))
            out.puts('To: %s' % ', '.join(
                encode_address(address) for address in spec.to))
            if spec.subject is not None:
                subject = ' '.join(spec.subject.splitlines())
                out.puts('Subject: %s' % encode_header(subject))
            out.puts('Date: %s' % self.date)
            out.puts('Message-Id: %s' % self.message_id)
            out.puts('MIME-Version: 1.0')

    def _write_message(self, storage):
        if not self.spec.attachments:
            self._write_body(storage)
            return
        with self._multipart(storage, 'mixed') as boundary:
            if self.spec.bodies:
                self._write_part(storage, boundary)
                self._write_body(storage)
            for ref in self.spec.attachments:
                self._write_part(storage, boundary)
                self._write_file(storage, ref)

    def _write_body(self, storage):
        bodies = self.spec.bodies
        if not bodies:
            return
        if len(bodies) == 1:
            (kind, data), = bodies.items()
            self._write_content(storage, data, CONTENT_TYPES[kind])
            return
        with self._multipart(storage, 'alternative') as boundary:
            for kind in BODY_KINDS:
                if kind not in bodies:
                    continue
                self._write_part(storage, boundary)
                self._write_content(
                    storage, bodies[kind], CONTENT_TYPES[kind])

    def _write_content(self, storage, data, content_type):
        encoded = data.encode(CHARSET)
        with storage.write() as out:
            out.puts('Content-Type: %s; charset=%s' % (content_type, CHARSET))
            if needs_base64(encoded):
                out.puts('Content-Transfer-Encoding: base64')
                out.puts()
                for line in wrap_base64(encoded):
                    out.puts(line)
            else:
                out.puts('Content-Transfer-Encoding: 8bit')
                out.puts()
                out.puts(data)

    @contextmanager
    def _multipart(self, storage, kind):
        boundary = self._new_boundary(kind)
        with storage.write() as out:
            out.puts('Content-Type: multipart/%s; boundary="%s"'
                     % (kind, boundary))
        yield boundary
        self._write_part(storage, boundary, end=True)

    def _write_part(self, storage, boundary, end=False):
        with storage.write() as out:
            out.puts()
            out.puts('--%s%s' % (boundary, '--' if end else ''))

    def _new_boundary(self, kind):
        bodies = self.spec.bodies.values()
        for attempt in range(1000):
            token = ''.join(random.choice(_ALPHANUMERIC)
                            for i in range(BOUNDARY_RANDOM))
            padding = (kind * BOUNDARY_SIZE)[:BOUNDARY_SIZE - len(token)]
            boundary = padding + token
            if not any(boundary in body for body in bodies):
                return boundary
        raise RuntimeError("Failed to generate a boundary absent from the"
                           " message bodies")

    def _write_file(self, storage, ref):
        with self._attachment_path(storage, ref) as (name, path):
            content_type = self._read_mime(path)
            with storage.write() as out:
                out.puts('Content-Type: %s' % content_type)
                out.puts('Content-Transfer-Encoding: base64')
                out.puts('Content-Disposition: attachment; filename="%s"'
                         % name.replace('\\', '\\\\').replace('"', '\\"'))
                out.puts()
            with storage.capture() as message_path:
                self._encode_file(path, message_path)

    @contextmanager
    def _attachment_path(self, storage, ref):
        """Yield `(display_name, path)` for an attachment reference.

        Inline data is written to a temporary file next to the spilled
        message for the duration of the block.
        """
        kind = attachment_kind(ref)
        if kind == 'inline':
            directory = os.path.join(storage.path, SUBDIRECTORY)
            os.makedirs(directory, exist_ok=True)
            fd, path = tempfile.mkstemp(prefix='attachment', dir=directory)
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(ref.data)
                yield ref.filename, path
            finally:
                os.remove(path)
            return

        if kind == 'named':
            name, path = ref
        elif kind == 'file':
            name = path = ref.name
        else:
            name = path = ref
        path = os.fspath(path)
        if not os.path.isfile(path):
            raise NotFound(path)
        if not os.access(path, os.R_OK):
            raise NotReadable(path)
        yield os.path.basename(os.fspath(name)), path

    def _read_mime(self, path):
        args = list(self.settings.file) + [path]
        output = self._run(args, stdout=subprocess.PIPE)
        return output.decode('ascii', 'replace').strip()

    def _encode_file(self, path, message_path):
        args = list(self.settings.base64) + [path]
        with open(message_path, 'ab') as out:
            self._run(args, stdout=out)

    def _send_message(self, storage):
        if storage.spilled:
            with storage.capture() as message_path:
                self.mailer.send_file(message_path)
        else:
            self.mailer.send(storage.read())

    def _run(self, args, **kw):
        """
        Run an external command, raising `CalledProcessError` on failure,
        including when the command cannot be started.

        Returns the captured standard output, if any.
        """
        try:
            return subprocess.run(args, check=True, **kw).stdout
        except OSError as e:
            raise subprocess.CalledProcessError(
                COMMAND_NOT_FOUND, args) from e


def compile_and_deliver(spec, settings=None, mailer=None):
    """Compile the message described by `spec` and send it.

    Returns True on success, False when an external command failed.
    """
    return Message(spec, settings, mailer).deliver()
