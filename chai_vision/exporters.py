from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from loguru import logger
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from chai_vision.display_utils import aggregate_frame, growth_frame, targets_frame

# Column layouts of the two accepted upload formats
UPLOAD_TEMPLATE_COLUMNS = ['Date', 'Channel', 'Brand', 'Revenue']
SKU_TEMPLATE_COLUMNS = ['Date', 'Channel', 'Brand', 'SKU', 'Product Name', 'Units', 'Revenue']

TEMPLATE_EXAMPLE_ROWS = [
    {'Date': '2025-01-15', 'Channel': 'Amazon', 'Brand': 'LifePro', 'SKU': 'LP-VIB-01',
     'Product Name': 'Vibration Plate', 'Units': 12, 'Revenue': 3450.00},
    {'Date': '2025-01-15', 'Channel': 'DTC-Shopify', 'Brand': 'PetCove', 'SKU': 'PC-BED-02',
     'Product Name': 'Orthopedic Dog Bed', 'Units': 4, 'Revenue': 519.96},
]


class ReportExporter:
    def __init__(self, config: Dict):
        self.config = config
        self.output_path = Path(config['paths']['output_dir'])
        self.output_path.mkdir(parents=True, exist_ok=True)

    def export_view(self, view, prefix: Optional[str] = None) -> Dict[str, Path]:
        """
        Export one dashboard view as CSV files

        Args:
            view: DashboardView from the dashboard service
            prefix: File name prefix (defaults to a slug of the period label)

        Returns:
            Dict mapping export type to file path
        """
        prefix = prefix or _slug(view.period.label)
        frames = self._view_frames(view)

        exports = {}
        for name, df in frames.items():
            filepath = self.output_path / f'{prefix}_{name}.csv'
            df.to_csv(filepath, index=False)
            exports[name] = filepath

        logger.info(f"Exported {len(exports)} files to {self.output_path}")
        return exports

    def export_workbook(self, view, filename: Optional[str] = None) -> Path:
        """
        Write the view into one Excel workbook, a sheet per table

        Returns:
            Path to saved Excel file
        """
        if filename is None:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            filename = f"Sales_{_slug(view.period.label)}_{timestamp}.xlsx"
        filepath = self.output_path / filename

        frames = self._view_frames(view)
        with pd.ExcelWriter(filepath, engine='openpyxl') as writer:
            for name, df in frames.items():
                sheet_name = name.replace('_', ' ').title()[:31]
                df.to_excel(writer, sheet_name=sheet_name, index=False)
                _format_sheet(writer.sheets[sheet_name], df)

        logger.info(f"Saved Excel workbook to {filepath}")
        return filepath

    def _view_frames(self, view) -> Dict[str, pd.DataFrame]:
        frames = {
            'summary': summary_frame(view),
            'revenue': aggregate_frame(view.aggregate),
            'targets': targets_frame(view.targets, view.aggregate.group_by),
        }
        if view.comparison is not None:
            frames['growth'] = growth_frame(view.comparison)
        return frames


def summary_frame(view) -> pd.DataFrame:
    """KPI card numbers as a two-column metric/value table"""
    summary = view.summary
    rows = [
        ('Period', view.period.label),
        ('Brand', view.brand or 'All Brands'),
        ('Total Revenue', summary.total_revenue),
        ('Target', summary.target),
        ('KPI Target', summary.kpi_target),
        ('Achievement %', summary.achievement_percent),
        ('KPI Achievement %', summary.kpi_achievement_percent),
        ('Gap to Target', summary.gap_to_target),
        ('Days Elapsed', summary.days_elapsed),
        ('Days Remaining', summary.days_remaining),
        ('Run Rate', summary.run_rate),
    ]
    for name, value in summary.projections.items():
        rows.append((f'Projection ({name})', value))
    return pd.DataFrame(
        [(metric, '' if value is None else str(value)) for metric, value in rows],
        columns=['metric', 'value'],
    )


def write_upload_template(path, sku: bool = False) -> Path:
    """Write a CSV template users fill in before uploading sales data"""
    columns = SKU_TEMPLATE_COLUMNS if sku else UPLOAD_TEMPLATE_COLUMNS
    df = pd.DataFrame(TEMPLATE_EXAMPLE_ROWS)[columns]

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logger.info(f"Wrote upload template to {path}")
    return path


def _format_sheet(ws, df: pd.DataFrame):
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill

    # Auto-fit column widths
    for col_idx, column in enumerate(df.columns, start=1):
        values = [str(column)] + [str(v) for v in df[column].tolist()]
        width = min(max(len(v) for v in values) + 2, 50)
        ws.column_dimensions[get_column_letter(col_idx)].width = width


def _slug(label: str) -> str:
    return ''.join(c if c.isalnum() else '_' for c in label).strip('_')
