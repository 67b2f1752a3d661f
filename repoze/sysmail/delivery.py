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
Transactional mail delivery

Messages handed to `DirectMailDelivery` are compiled and sent only when
the current transaction commits; nothing is written before that.
"""

from zope.interface import implementer
import transaction
from transaction.interfaces import ISavepointDataManager
from transaction.interfaces import IDataManagerSavepoint

from repoze.sysmail.interfaces import IMailDelivery
from repoze.sysmail.message import Message
from repoze.sysmail.settings import Settings


@implementer(ISavepointDataManager)
class MailDataManager(object):
    """Calls `callable(*args)` during `tpc_finish`.

    The manager must be joined to a transaction with `join_transaction`
    before the transaction machinery drives it.
    """
    def __init__(self, callable, args=(), transaction_manager=None):
        self.callable = callable
        self.args = args
        if transaction_manager is None:
            transaction_manager = transaction.manager
        self.transaction_manager = transaction_manager
        self.transaction = None
        self.tpc_phase = 0
        self.finished = False

    def join_transaction(self, trans=None):
        if trans is None:
            trans = self.transaction_manager.get()
        if self.transaction is not None and self.transaction is not trans:
            raise ValueError("Already joined to another transaction")
        if self not in trans._resources:
            trans.join(self)
        self.transaction = trans

    def _check(self, trans, phase=None):
        if self.transaction is None:
            raise ValueError("Not in a transaction")
        if self.transaction is not trans:
            raise ValueError("In a different transaction")
        if phase is not None and self.tpc_phase != phase:
            raise ValueError("TPC phase error: %d" % self.tpc_phase)

    def commit(self, trans):
        self._check(trans)

    def abort(self, trans):
        self._check(trans, 0)

    def sortKey(self):
        return str(id(self))

    def savepoint(self):
        if self.transaction is None:
            raise ValueError("Not in a transaction")
        return MailDataSavepoint(self)

    def tpc_begin(self, trans, subtransaction=False):
        self._check(trans, 0)
        if subtransaction:
            raise ValueError("Subtransactions not supported")
        self.tpc_phase = 1

    def tpc_vote(self, trans):
        self._check(trans, 1)
        self.tpc_phase = 2

    def tpc_finish(self, trans):
        self._check(trans, 2)
        self.callable(*self.args)
        self.finished = True

    def tpc_abort(self, trans):
        self._check(trans)
        if self.tpc_phase == 0:
            raise ValueError("TPC phase error: %d" % self.tpc_phase)
        if self.finished:
            raise ValueError("TPC already finished")
        self.tpc_phase = 0


@implementer(IDataManagerSavepoint)
class MailDataSavepoint(object):
    """Nothing to undo: `transaction` drops the manager on rollback."""

    def __init__(self, mail_data_manager):
        self.mail_data_manager = mail_data_manager

    def rollback(self):
        pass


@implementer(IMailDelivery)
class DirectMailDelivery(object):

    message_factory = Message  # allow replacement for testing.

    def __init__(self, settings=None, mailer=None, transaction_manager=None):
        if settings is None:
            settings = Settings()
        self.settings = settings
        self.mailer = mailer
        if transaction_manager is None:
            transaction_manager = transaction.manager
        self.transaction_manager = transaction_manager

    def send(self, spec):
        spec.validate()
        message = self.message_factory(spec, self.settings, self.mailer)
        manager = MailDataManager(
            message.deliver, transaction_manager=self.transaction_manager)
        manager.join_transaction()
        return message.message_id
