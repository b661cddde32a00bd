"""Render the finalized scope of work as a PDF summary."""

import io
import logging
import re
from typing import Any, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from ..models.claim import ClaimRecord, Trade
from ..scope.aggregator import compute_payment_schedule, compute_totals, work_not_doing_text
from ..utils.errors import ExportError

logger = logging.getLogger(__name__)

PAGE_SIZES = {"A4": A4, "LETTER": letter}
DEFAULT_TITLE = "Scope of Work Summary"

_HEADER_BACKGROUND = colors.HexColor('#003366')


def format_currency(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"${value:,.2f}"


def summary_filename(record: ClaimRecord) -> str:
    """
    Download filename for a record's summary.

    ``scope-summary-<customer-slug>.pdf`` when a customer is set,
    otherwise ``scope-summary.pdf``.
    """
    if record.customer and record.customer.display_name.strip():
        slug = re.sub(r'[^a-z0-9]+', '-', record.customer.display_name.lower()).strip('-')
        if slug:
            return f"scope-summary-{slug}.pdf"
    return "scope-summary.pdf"


def _para(text: Any, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape(str(text)).replace('\n', '<br/>'), style)


def _grid_table(rows: List[List[Any]], col_widths: List[float]) -> Table:
    table = Table(rows, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), _HEADER_BACKGROUND),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ALIGN', (-2, 1), (-1, -1), 'RIGHT'),
    ]))
    return table


def _key_value_table(rows: List[List[str]]) -> Table:
    table = Table(rows, colWidths=[3.2 * inch, 2.6 * inch])
    table.setStyle(TableStyle([
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('LINEBELOW', (0, 0), (-1, -1), 0.25, colors.lightgrey),
    ]))
    return table


def _trade_section(trade: Trade, styles, cell_style: ParagraphStyle, totals) -> list:
    story: list = []
    trade_totals = totals.for_trade(trade.id)
    heading = f"{trade.name}: Total Insurance Coverage {format_currency(trade_totals.rcv)}"
    if trade_totals.acv > 0:
        heading += f" | Total Upfront Money {format_currency(trade_totals.acv)}"
    story.append(_para(heading, styles['Heading3']))

    item_widths = [0.6 * inch, 0.9 * inch, 3.1 * inch, 0.95 * inch, 0.95 * inch]
    header = ['Ref', 'Quantity', 'Description', 'RCV', 'ACV']

    included = [item for item in trade.line_items if item.checked]
    if included:
        rows = [header] + [
            [item.document_line_number or item.id, item.quantity,
             _para(item.description, cell_style),
             format_currency(item.rcv), format_currency(item.acv)]
            for item in included
        ]
        story.append(_grid_table(rows, item_widths))
        noted = [item for item in included if item.notes]
        if noted:
            story.append(Spacer(1, 0.05 * inch))
            story.append(_para("Notes:", styles['Normal']))
            for item in noted:
                story.append(_para(f"{item.description}: {item.notes}", cell_style))

    excluded = [item for item in trade.line_items if not item.checked]
    if excluded:
        story.append(Spacer(1, 0.1 * inch))
        story.append(_para("Work Not Doing:", styles['Normal']))
        rows = [header] + [
            [item.document_line_number or item.id, item.quantity,
             _para(item.description, cell_style),
             format_currency(item.rcv), format_currency(item.acv)]
            for item in excluded
        ]
        story.append(_grid_table(rows, item_widths))

    if trade.supplements:
        story.append(Spacer(1, 0.1 * inch))
        story.append(_para("Supplements:", styles['Normal']))
        rows = [['Quantity', 'Description', 'Amount']] + [
            [supp.quantity, _para(supp.title, cell_style), format_currency(supp.amount)]
            for supp in trade.supplements
        ]
        story.append(_grid_table(rows, [1.2 * inch, 3.8 * inch, 1.5 * inch]))

    story.append(Spacer(1, 0.2 * inch))
    return story


def render_summary_pdf(
    record: ClaimRecord,
    title: str = DEFAULT_TITLE,
    page_size: str = "A4"
) -> bytes:
    """
    Render a claim record as a paginated PDF.

    Trades with no included line items and no supplements are left out of
    the scope breakdown; their work still appears under "Work Not Included".

    Args:
        record: Claim record, normally finalized
        title: Heading printed on the first page
        page_size: "A4" or "LETTER"

    Returns:
        PDF document bytes

    Raises:
        ExportError: If reportlab fails to build the document
    """
    totals = compute_totals(record)
    schedule = compute_payment_schedule(totals, record.deductible)

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'SummaryTitle',
        parent=styles['Heading1'],
        fontSize=18,
        textColor=_HEADER_BACKGROUND,
        spaceAfter=6,
        alignment=TA_CENTER
    )
    subtitle_style = ParagraphStyle('SummarySubtitle', parent=styles['Normal'], alignment=TA_CENTER)
    cell_style = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=9, leading=11)

    story: list = [
        _para(title, title_style),
        _para("Insurance Claim Documentation", subtitle_style),
        Spacer(1, 0.25 * inch),
    ]

    info_rows = []
    if record.customer and record.customer.display_name:
        info_rows.append(['Customer:', record.customer.display_name])
        if record.customer.address:
            info_rows.append(['Address:', record.customer.address])
    if record.rep:
        info_rows.append(['Rep:', record.rep])
    if record.claim_number:
        info_rows.append(['Claim #:', record.claim_number])
    if record.claim_adjuster.name:
        info_rows.append(['Adjuster:', record.claim_adjuster.name])
    if info_rows:
        info_table = Table(info_rows, colWidths=[1.5 * inch, 4.5 * inch])
        info_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
        ]))
        story.append(info_table)
        story.append(Spacer(1, 0.25 * inch))

    story.append(_para("Scope of Work", styles['Heading2']))
    for trade in record.trades:
        if not any(item.checked for item in trade.line_items) and not trade.supplements:
            continue
        story.extend(_trade_section(trade, styles, cell_style, totals))

    # Drafts have no stored text yet; derive it from the current selections.
    exclusions = record.work_not_doing or work_not_doing_text(record.trades)
    if exclusions:
        story.append(_para("Work Not Included", styles['Heading2']))
        story.append(_para(exclusions, styles['Normal']))
        if totals.leftover_acv > 0:
            story.append(_para(f"ACV Not Doing: {format_currency(totals.leftover_acv)}", styles['Normal']))
        story.append(Spacer(1, 0.2 * inch))

    story.append(_para("Financial Breakdown - Scope of Work", styles['Heading2']))
    financial_rows = [['Total Replacement Cost Value (RCV):', format_currency(totals.total_rcv)]]
    if totals.show_depreciation:
        financial_rows.append(['Total Actual Cash Value (ACV):', format_currency(totals.total_acv)])
        financial_rows.append(['Depreciation:', format_currency(totals.depreciation)])
    financial_rows.append(['Deductible:', format_currency(record.deductible)])
    if totals.total_supplements:
        financial_rows.append(['Supplements:', format_currency(totals.total_supplements)])
    if totals.leftover_acv > 0:
        financial_rows.append(['Work Not Doing ACV (Available):', format_currency(totals.leftover_acv)])
    story.append(_key_value_table(financial_rows))
    story.append(Spacer(1, 0.2 * inch))

    story.append(_para("Payment Schedule", styles['Heading2']))
    story.append(_key_value_table([
        ['Deposit + Progress Payment (ACV Total):', format_currency(schedule.acv_payments_total)],
        ['Due Today:', format_currency(schedule.due_today)],
        ['Due on Substantial Completion:', format_currency(schedule.due_on_completion)],
        ['Depreciation + Deductible:', format_currency(schedule.depreciation_plus_deductible)],
        ['Insurance Scope of Work Total:', format_currency(totals.total_rcv)],
    ]))

    if record.signature:
        story.append(Spacer(1, 0.3 * inch))
        story.append(_para("Signatures", styles['Heading2']))
        signature_rows = [
            ['Contractor:', record.signature.contractor_name],
            ['Homeowner:', record.signature.homeowner_name],
        ]
        if record.signature.homeowner_email:
            signature_rows.append(['Homeowner Email:', record.signature.homeowner_email])
        if record.signature.signature_date:
            signature_rows.append(['Date:', record.signature.signature_date])
        story.append(_key_value_table(signature_rows))

    buffer = io.BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=PAGE_SIZES.get(page_size.upper(), A4),
            title=title,
            leftMargin=0.6 * inch,
            rightMargin=0.6 * inch,
        )
        doc.build(story)
    except Exception as e:
        logger.error(f"Failed to render summary PDF: {str(e)}")
        raise ExportError.render_failed(e)

    pdf_bytes = buffer.getvalue()
    logger.info(f"Rendered summary PDF: {len(pdf_bytes)} bytes, trades={len(record.trades)}")
    return pdf_bytes
