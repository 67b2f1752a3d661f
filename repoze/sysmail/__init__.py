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
from repoze.sysmail.message import Attachment
from repoze.sysmail.message import MessageSpec
from repoze.sysmail.message import compile_and_deliver


def email(to, from_=None, subject=None, text=None, html=None, enriched=None,
          attachments=(), settings=None):
    """Compile and send a message in one call.

    Example::

      email('user@example.com',
            from_='me@example.com',
            subject='test subject',
            text='big small normal',
            html=open('test.html').read(),
            attachments=['Gemfile', ('report.zip', '/tmp/r.zip')])
    """
    spec = MessageSpec(to, from_=from_, subject=subject, text=text,
                       html=html, enriched=enriched, attachments=attachments)
    return compile_and_deliver(spec, settings)


__all__ = ['Attachment', 'MessageSpec', 'compile_and_deliver', 'email']
