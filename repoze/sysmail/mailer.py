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
import subprocess

from zope.interface import implementer
from repoze.sysmail.interfaces import IMailer
from repoze.sysmail.settings import Settings
from repoze.sysmail.settings import command

# Exit status a shell reports for a command it could not run.
COMMAND_NOT_FOUND = 127


@implementer(IMailer)
class SendmailMailer(object):
    """
    Provides for /usr/sbin/sendmail mailing functionality

    Class Defaults ( override in __init__ constructor )
        `sendmail_command`
            argument list used to invoke sendmail; the complete message,
            headers included, is written to its standard input
                ["/usr/sbin/sendmail", "-t", "-i"]

    Standard Sendmail command-line arguments :
        * for more info see http://linux.die.net/man/8/sendmail.sendmail *
        -i        | When  reading  a message from standard input, don't treat
                    a line with only a . character as the end of input.
        -t        | Read message for recipients. To:, Cc:, and Bcc: lines will
                    be scanned for recipient addresses. The Bcc: line will be
                    deleted before transmission.

    Recipients are never passed on the command line: the compiled message
    always carries its own 'To:' header.
    """
    sendmail_command = Settings.sendmail

    def __init__(self, sendmail_command=None):
        """see class docstring for details on accepted kwargs"""
        if sendmail_command:
            self.sendmail_command = command(sendmail_command)

    def send(self, message):
        if not isinstance(message, str):
            raise ValueError('Message must be a unicode string')
        args = list(self.sendmail_command)
        p = self._spawn(args, stdin=subprocess.PIPE)
        p.communicate(message.encode('utf-8'))
        if p.returncode:
            raise subprocess.CalledProcessError(p.returncode, args)

    def send_file(self, path):
        args = list(self.sendmail_command)
        with open(path, 'rb') as f:
            p = self._spawn(args, stdin=f)
            p.communicate()
        if p.returncode:
            raise subprocess.CalledProcessError(p.returncode, args)

    def _spawn(self, args, **kw):
        try:
            return self._popen(args, **kw)
        except OSError as e:
            raise subprocess.CalledProcessError(
                COMMAND_NOT_FOUND, args) from e

    def _popen(self, *args, **kw): # pragma NO COVER
        """
        Invoke the actual sendmail subprocess.

        Expects the same call signature as subprocess.Popen.
        """
        return subprocess.Popen(*args, **kw)
