"""OFX 1.02 / QFX rendering of a :class:`~bank2ofx.models.Statement`.

Output is the OFX SGML header block followed by an element tree written with
closed tags (accepted by Quicken, GnuCash, Moneydance and friends). Amounts
are rendered with exactly two decimals and dates as
``YYYYMMDDHHMMSS.mmm[0:GMT]``. Optional transaction fields are omitted when
empty. ``INTU.BID`` is emitted only when the statement carries an alternate
issuer id (QFX).
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from .models import Balance, SignOnResponse, Statement, StatementResponse, Transaction
from .normalizers import format_amount, format_ofx_datetime

OFX_HEADER = (
    "OFXHEADER:100\n"
    "DATA:OFXSGML\n"
    "VERSION:102\n"
    "SECURITY:NONE\n"
    "ENCODING:USASCII\n"
    "CHARSET:1252\n"
    "COMPRESSION:NONE\n"
    "OLDFILEUID:NONE\n"
    "NEWFILEUID:NONE\n"
)


def _text(parent: ET.Element, tag: str, value: object) -> ET.Element:
    el = ET.SubElement(parent, tag)
    el.text = str(value)
    return el


def _status(parent: ET.Element, code: int, severity: str) -> None:
    status = ET.SubElement(parent, "STATUS")
    _text(status, "CODE", code)
    _text(status, "SEVERITY", severity)


def _sign_on(parent: ET.Element, rs: SignOnResponse) -> None:
    sonrs = ET.SubElement(ET.SubElement(parent, "SIGNONMSGSRSV1"), "SONRS")
    _status(sonrs, rs.code, rs.severity)
    _text(sonrs, "DTSERVER", format_ofx_datetime(rs.date))
    _text(sonrs, "LANGUAGE", rs.language)
    fi = ET.SubElement(sonrs, "FI")
    _text(fi, "ORG", rs.org)
    _text(fi, "FID", rs.org_id)
    if rs.intuit_id:
        _text(sonrs, "INTU.BID", rs.intuit_id)


def _transaction(parent: ET.Element, t: Transaction) -> None:
    el = ET.SubElement(parent, "STMTTRN")
    _text(el, "TRNTYPE", t.type_code)
    if t.posted is not None:
        _text(el, "DTPOSTED", format_ofx_datetime(t.posted))
    if t.date is not None:
        _text(el, "DTUSER", format_ofx_datetime(t.date))
    _text(el, "TRNAMT", format_amount(t.amount))
    for tag, value in (("FITID", t.id), ("NAME", t.name), ("PAYEE", t.payee), ("MEMO", t.memo)):
        if value:
            _text(el, tag, value)


def _balance(parent: ET.Element, tag: str, b: Balance) -> None:
    el = ET.SubElement(parent, tag)
    _text(el, "BALAMT", format_amount(b.amount))
    _text(el, "DTASOF", format_ofx_datetime(b.as_of))


def _statement_response(parent: ET.Element, rs: StatementResponse) -> None:
    trnrs = ET.SubElement(ET.SubElement(parent, "BANKMSGSRSV1"), "STMTTRNRS")
    _text(trnrs, "TRNUID", rs.trn_uid)
    _status(trnrs, rs.code, rs.severity)

    stmtrs = ET.SubElement(trnrs, "STMTRS")
    _text(stmtrs, "CURDEF", rs.currency)
    acct = ET.SubElement(stmtrs, "BANKACCTFROM")
    _text(acct, "BANKID", rs.bank_id)
    _text(acct, "ACCTID", rs.account_id)
    _text(acct, "ACCTTYPE", rs.account_type)

    tranlist = ET.SubElement(stmtrs, "BANKTRANLIST")
    _text(tranlist, "DTSTART", format_ofx_datetime(rs.start_date))
    _text(tranlist, "DTEND", format_ofx_datetime(rs.end_date))
    for t in rs.transactions:
        _transaction(tranlist, t)

    _balance(stmtrs, "LEDGERBAL", rs.ledger_balance)
    _balance(stmtrs, "AVAILBAL", rs.available_balance)


def to_element(statement: Statement) -> ET.Element:
    """Build the ``<OFX>`` element tree for ``statement``."""

    root = ET.Element("OFX")
    _sign_on(root, statement.sign_on)
    _statement_response(root, statement.response)
    return root


def render_ofx(statement: Statement) -> str:
    """Serialize ``statement`` to OFX text (header block + document)."""

    root = to_element(statement)
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    return f"{OFX_HEADER}\n{body}\n"


__all__ = ["OFX_HEADER", "render_ofx", "to_element"]
