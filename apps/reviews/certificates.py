"""
Reviewer certificate PDF.

Renders a "Certificate of Reviewing" for a completed review with a QR
code pointing at the certificate verification page.
"""
from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image
import qrcode


def verification_code(review):
    return f"REV-{review.id.hex[:12].upper()}"


class ReviewerCertificateGenerator:
    """
    Builds the certificate PDF for one completed review.
    """

    def __init__(self, review, journal_name):
        self.review = review
        self.journal_name = journal_name
        self.width, self.height = landscape(A4)
        self.buffer = BytesIO()

    def _create_qr_code(self, data):
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=4,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        qr_buffer = BytesIO()
        img.save(qr_buffer, format='PNG')
        qr_buffer.seek(0)
        return qr_buffer

    def _draw_border(self, canvas_obj):
        canvas_obj.setStrokeColor(colors.HexColor('#1e40af'))
        canvas_obj.setLineWidth(3)
        canvas_obj.rect(20*mm, 20*mm, self.width - 40*mm, self.height - 40*mm)

        canvas_obj.setStrokeColor(colors.HexColor('#60a5fa'))
        canvas_obj.setLineWidth(1)
        canvas_obj.rect(25*mm, 25*mm, self.width - 50*mm, self.height - 50*mm)

    def generate(self):
        """
        Generate the certificate.

        Returns:
            BytesIO buffer containing the PDF
        """
        pdf = SimpleDocTemplate(
            self.buffer,
            pagesize=landscape(A4),
            rightMargin=30*mm,
            leftMargin=30*mm,
            topMargin=30*mm,
            bottomMargin=30*mm,
            title='Certificate of Reviewing',
        )
        styles = getSampleStyleSheet()

        title_style = ParagraphStyle(
            'CertificateTitle',
            parent=styles['Heading1'],
            fontSize=34,
            textColor=colors.HexColor('#1e40af'),
            spaceAfter=20,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold',
        )
        recipient_style = ParagraphStyle(
            'Recipient',
            parent=styles['Normal'],
            fontSize=26,
            textColor=colors.HexColor('#1f2937'),
            spaceAfter=20,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold',
        )
        body_style = ParagraphStyle(
            'Body',
            parent=styles['Normal'],
            fontSize=14,
            textColor=colors.HexColor('#4b5563'),
            spaceAfter=10,
            alignment=TA_CENTER,
            leading=20,
        )
        footer_style = ParagraphStyle(
            'Footer',
            parent=styles['Normal'],
            fontSize=9,
            textColor=colors.HexColor('#9ca3af'),
            alignment=TA_CENTER,
        )

        review = self.review
        completed_on = review.submitted_at.strftime('%B %d, %Y')
        code = verification_code(review)

        elements = [
            Paragraph('Certificate of Reviewing', title_style),
            Spacer(1, 8*mm),
            Paragraph('This certificate is presented to', body_style),
            Paragraph(escape(review.reviewer.full_name), recipient_style),
            Paragraph(
                f'in recognition of the peer review of the manuscript<br/>'
                f'<i>"{escape(review.submission.title)}"</i>',
                body_style
            ),
            Paragraph(f'for {escape(self.journal_name)}, completed on {completed_on}.', body_style),
            Spacer(1, 10*mm),
        ]

        verification_url = f"{settings.FRONTEND_URL}/certificates/verify?code={code}"
        qr_image = Image(self._create_qr_code(verification_url), width=60, height=60)
        qr_table = Table(
            [[qr_image, Paragraph(f'<b>Verification Code:</b> {code}<br/>{verification_url}', footer_style)]],
            colWidths=[70, 400]
        )
        qr_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (0, 0), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        elements.append(qr_table)

        def decorate(canvas_obj, doc):
            canvas_obj.saveState()
            self._draw_border(canvas_obj)
            canvas_obj.restoreState()

        pdf.build(elements, onFirstPage=decorate, onLaterPages=decorate)
        self.buffer.seek(0)
        return self.buffer


def generate_reviewer_certificate(review, journal_name):
    return ReviewerCertificateGenerator(review, journal_name).generate()
