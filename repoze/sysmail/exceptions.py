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
"""Errors raised while compiling a message.

Failures of the external commands (sniffer, encoder, transport) are not
listed here: they surface as `subprocess.CalledProcessError`.
"""
import errno
import os


class SysmailError(Exception):
    """Base class for `repoze.sysmail` errors."""


class InvalidRecipient(SysmailError, ValueError):
    """The message has no 'To:' address."""


class InvalidAttachment(SysmailError, TypeError):
    """An attachment is neither inline data nor a file path."""


class _PathError(SysmailError, IOError):

    code = None

    def __init__(self, path):
        super(_PathError, self).__init__(
            self.code, os.strerror(self.code), path)


class NotFound(_PathError):
    """The attachment path does not name an existing file."""
    code = errno.ENOENT


class NotReadable(_PathError):
    """The attachment file exists but cannot be read."""
    code = errno.EACCES
