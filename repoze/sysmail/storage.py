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
Message buffer kept in memory until an external command needs a file.
"""

import io
import logging
import os
import tempfile
import threading
from contextlib import contextmanager

from zope.interface import implementer

from repoze.sysmail.interfaces import IStorage

SUBDIRECTORY = 'sysmail'
PREFIX = 'storage'
ENCODING = 'utf-8'


class Writer(object):
    """Line oriented view on the active storage handle."""

    def __init__(self, io):
        self._io = io

    def write(self, data):
        self._io.write(data)

    def puts(self, line=''):
        if line.endswith('\n'):
            self._io.write(line)
        else:
            self._io.write(line + '\n')


@implementer(IStorage)
class Storage(object):
    """See `repoze.sysmail.interfaces.IStorage`"""

    log = logging.getLogger(__name__)

    def __init__(self, path=None):
        if path is None:
            path = tempfile.gettempdir()
        self.path = path
        self.filename = None
        self._lock = threading.Lock()
        self._io = io.StringIO()

    @property
    def spilled(self):
        return self.filename is not None

    @contextmanager
    def write(self):
        with self._lock:
            yield Writer(self._io)

    @contextmanager
    def capture(self):
        with self._lock:
            self._spill()
            self._io.close()
            try:
                yield self.filename
            finally:
                self._io = self._open(self.filename)

    def read(self):
        with self._lock:
            if not self.spilled:
                return self._io.getvalue()
            self._io.flush()
            with io.open(self.filename, encoding=ENCODING, newline='') as f:
                return f.read()

    def clear(self):
        with self._lock:
            self._io.close()
            if self.spilled:
                try:
                    os.remove(self.filename)
                except FileNotFoundError:
                    pass
                self.filename = None
            self._io = io.StringIO()

    def _spill(self):
        if self.spilled:
            return
        directory = os.path.join(self.path, SUBDIRECTORY)
        os.makedirs(directory, exist_ok=True)
        fd, filename = tempfile.mkstemp(prefix=PREFIX, dir=directory)
        with io.open(fd, 'w', encoding=ENCODING, newline='') as f:
            f.write(self._io.getvalue())
        self._io.close()
        self._io = self._open(filename)
        self.filename = filename
        self.log.debug("Message storage moved to %s", filename)

    def _open(self, filename):
        return io.open(filename, 'a', encoding=ENCODING, newline='')
