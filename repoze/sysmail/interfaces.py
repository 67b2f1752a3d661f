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
"""`repoze.sysmail` interfaces

Sending e-mail with the system tools works as follows:

- An application describes the message with a `MessageSpec`: addresses,
  subject, up to three body alternatives and any number of attachments.

- A message compiler (`IMessage`) turns a `MessageSpec` into MIME text.  It
  writes into a storage (`IStorage`) which lives in memory until an
  external command has to append to it; at that point the storage moves
  to a file on disk.  Attachments are typed by the `file` command and
  encoded by the `base64` command, both of which write straight into
  that file.

- The finished text, or the file holding it, is handed to a mailer
  (`IMailer`).  The package provides `SendmailMailer`, which pipes the
  message into a sendmail-compatible binary.

- A transactional delivery (`IMailDelivery`) postpones the whole thing
  until the current transaction commits.
"""

from zope.interface import Attribute, Interface


class IStorage(Interface):
    """Write buffer which spills from memory to a file on demand.

    All operations are serialized by a single lock.
    """

    spilled = Attribute("True once the content lives in a backing file.")

    filename = Attribute("Path of the backing file, or None.")

    def write():
        """Context manager yielding a handle with `write` and `puts`.
        """

    def capture():
        """Context manager yielding the path of the backing file.

        The storage is moved to disk first if needed, and the handle is
        closed for the duration of the block so another process may
        append to the file.
        """

    def read():
        """Return everything written so far as text.
        """

    def clear():
        """Release the backing file, if any, and start over in memory.
        """


class IMessage(Interface):
    """A message compiled from a `MessageSpec`.
    """

    message_id = Attribute("Value of the Message-Id header.")

    def as_string():
        """Compile the message and return its text without sending it.
        """

    def deliver():
        """Compile the message and hand it to the mailer.

        Returns True when the message was accepted and False when one of
        the external commands failed.  Invalid input raises.
        """


class IMailer(Interface):
    """Handles synchronous mail delivery.
    """

    def send(message):
        """Send the message text (unicode string) immediately.
        """

    def send_file(path):
        """Send the message stored in the file at `path` immediately.
        """


class IMailDelivery(Interface):
    """Send an email when the current transaction commits.
    """

    transaction_manager = Attribute("The transaction manager to use.")

    def send(spec):
        """Schedule the message described by `spec`.

        The `MessageSpec` is validated right away.  Returns the message ID.
        """
