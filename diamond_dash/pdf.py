from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from typing import Dict, Any, List, BinaryIO, Union
import os

from .models import Outing
from .utils import format_date_for_display


class SeasonReportPDF:
    """Printable season report for one pitcher"""

    def __init__(self, team_name: str = ""):
        self.team_name = team_name
        self.page_width, self.page_height = letter
        self.margin = 36  # 36 points = 0.5 inch
        self.content_width = self.page_width - (2 * self.margin)

        self.header_color = colors.HexColor("#1A1A2E")
        self.light_grey = colors.HexColor("#F5F5F5")
        self.dark_grey = colors.HexColor("#888888")

        self.styles = getSampleStyleSheet()
        self._create_custom_styles()

    def _create_custom_styles(self):
        """Create custom paragraph styles"""
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Title'],
            fontSize=24,
            spaceAfter=4,
            alignment=TA_CENTER,
            textColor=self.header_color,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='ReportSubtitle',
            parent=self.styles['Normal'],
            fontSize=10,
            spaceAfter=16,
            alignment=TA_CENTER,
            textColor=self.dark_grey
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=13,
            spaceAfter=8,
            spaceBefore=14,
            alignment=TA_LEFT,
            textColor=self.header_color,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='StatLabel',
            parent=self.styles['Normal'],
            fontSize=8,
            alignment=TA_CENTER,
            textColor=self.dark_grey
        ))

        self.styles.add(ParagraphStyle(
            name='StatValue',
            parent=self.styles['Normal'],
            fontSize=18,
            leading=22,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold',
            textColor=self.header_color
        ))

        self.styles.add(ParagraphStyle(
            name='TableCell',
            parent=self.styles['Normal'],
            fontSize=9,
            leading=11,
            alignment=TA_LEFT
        ))

    def _stat_boxes(self, report: Dict[str, Any]) -> Table:
        velo = report['max_velo']
        stats = [
            ('7-DAY PULSE', str(report['seven_day_pulse'])),
            ('STRIKE %', f"{report['strike_percentage']:.1f}%"),
            ('MAX VELO', f"{velo:g} mph" if velo else '-'),
            ('TOTAL PITCHES', str(report['total_pitches'])),
        ]
        row = [
            [Paragraph(label, self.styles['StatLabel']), Paragraph(value, self.styles['StatValue'])]
            for label, value in stats
        ]
        table = Table([row], colWidths=[self.content_width / 4] * 4)
        table.setStyle(TableStyle([
            ('BOX', (0, 0), (-1, -1), 0.5, colors.HexColor("#E5E5E5")),
            ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.HexColor("#E5E5E5")),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('TOPPADDING', (0, 0), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
        ]))
        return table

    def _grades_table(self, report: Dict[str, Any]) -> Table:
        data = [['Category', 'Grade', 'Score', 'Measure']]
        for grade in report['grades']:
            data.append([grade['name'], grade['grade'], f"{grade['score']:.0f}", grade['detail']])
        data.append(['Overall', report['overall_grade'], '', ''])

        table = Table(data, colWidths=[110, 60, 60, self.content_width - 230])
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), self.header_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (2, -1), 'CENTER'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor("#DDDDDD")),
        ]
        for i, grade in enumerate(report['grades'], start=1):
            style.append(('TEXTCOLOR', (1, i), (1, i), colors.HexColor(grade['color'])))
        style.append(('TEXTCOLOR', (1, -1), (1, -1), colors.HexColor(report['overall_color'])))
        table.setStyle(TableStyle(style))
        return table

    def _outings_table(self, outings: List[Outing]) -> Table:
        data = [['Date', 'Type', 'Pitches', 'Strike %', 'Velo', 'Focus']]
        for outing in outings:
            if outing.strikes is not None and outing.pitch_count > 0:
                strike_pct = f"{min(outing.strikes, outing.pitch_count) / outing.pitch_count * 100:.0f}%"
            else:
                strike_pct = '-'
            data.append([
                format_date_for_display(outing.date),
                outing.event_type.value,
                str(outing.pitch_count),
                strike_pct,
                f"{outing.max_velo:g}" if outing.max_velo else '-',
                Paragraph(outing.focus or '', self.styles['TableCell']),
            ])

        table = Table(data, colWidths=[110, 70, 55, 60, 45, self.content_width - 340], repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), self.light_grey),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('LINEBELOW', (0, 0), (-1, 0), 1, colors.HexColor("#DDDDDD")),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor("#FAFAFA")]),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        return table

    def generate_pdf(self, report: Dict[str, Any], output_path: Union[str, BinaryIO]) -> Union[str, BinaryIO]:
        """Write the report to a file path or binary stream and return it"""
        if isinstance(output_path, str):
            output_dir = os.path.dirname(output_path)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)

        doc = SimpleDocTemplate(
            output_path,
            pagesize=letter,
            leftMargin=self.margin,
            rightMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"{report['pitcher_name']} - Season Report",
        )

        subtitle = f"{report['year']} Season Report &middot; Generated {report['generated_on']}"
        if self.team_name:
            subtitle = f"{self.team_name} &middot; {subtitle}"

        story = [
            Paragraph(report['pitcher_name'], self.styles['ReportTitle']),
            Paragraph(subtitle, self.styles['ReportSubtitle']),
            self._stat_boxes(report),
            Paragraph('Season Grades', self.styles['SectionHeader']),
            self._grades_table(report),
            Paragraph('Recent Outings', self.styles['SectionHeader']),
        ]
        if report['recent_outings']:
            story.append(self._outings_table(report['recent_outings']))
        else:
            story.append(Paragraph('No outings recorded yet.', self.styles['Normal']))
        story.append(Spacer(1, 20))

        doc.build(story)
        return output_path


def generate_season_report_pdf(
    report: Dict[str, Any],
    output_path: Union[str, BinaryIO],
    team_name: str = ""
) -> Union[str, BinaryIO]:
    """Generate the season report PDF"""
    return SeasonReportPDF(team_name).generate_pdf(report, output_path)
