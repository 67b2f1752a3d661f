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
import os
import shlex
from configparser import ConfigParser

SECTION = "app:sysmail"


def command(value):
    if isinstance(value, str):
        return tuple(shlex.split(value))
    return tuple(value)


def string_or_none(s):
    if s in ('', 'None'):
        return None
    return s


class Settings(object):
    """Commands and storage location used to compile and send a message.

    Class Defaults ( override in __init__ constructor )
        `sendmail`
            transport command, reads the message on stdin and the
            recipients from its headers
                /usr/sbin/sendmail -t -i
        `base64`
            encoder command, takes a file path and writes base64 lines
            to stdout
                base64
        `file`
            MIME type sniffer, takes a file path and prints
            `type/subtype; charset=...`
                file --mime-type --mime-encoding -b
        `storage`
            directory under which spilled messages are written; None
            means the platform temporary directory

    Commands may be given as argument sequences or as strings, which are
    split with shell quoting rules.
    """
    sendmail = ('/usr/sbin/sendmail', '-t', '-i')
    base64 = ('base64',)
    file = ('file', '--mime-type', '--mime-encoding', '-b')
    storage = None

    names = ('sendmail', 'base64', 'file', 'storage')

    def __init__(self, sendmail=None, base64=None, file=None, storage=None):
        if sendmail:
            self.sendmail = command(sendmail)
        if base64:
            self.base64 = command(base64)
        if file:
            self.file = command(file)
        if storage:
            self.storage = storage

    def __repr__(self):
        return '<Settings %s>' % ', '.join(
            '%s=%r' % (name, getattr(self, name)) for name in self.names)

    @classmethod
    def from_config(cls, path, section=SECTION):
        """Read settings from the `section` of the ini file at `path`.

        Options left out of the file keep their defaults; a missing file
        gives the defaults.
        """
        defaults = dict(
            (name, cls._format(getattr(cls, name))) for name in cls.names)
        config = ConfigParser(defaults, interpolation=None)
        if not os.path.exists(path):
            return cls()
        config.read(path)
        if not config.has_section(section):
            return cls()
        return cls(
            sendmail=config.get(section, "sendmail"),
            base64=config.get(section, "base64"),
            file=config.get(section, "file"),
            storage=string_or_none(config.get(section, "storage")),
        )

    @staticmethod
    def _format(value):
        if value is None:
            return 'None'
        if isinstance(value, str):
            return value
        return ' '.join(shlex.quote(arg) for arg in value)
