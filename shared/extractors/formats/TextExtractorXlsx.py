from openpyxl import load_workbook

from shared.extractors.TextExtractorInterface import TextExtractorInterface


class TextExtractorXlsx(TextExtractorInterface):
    """One line per non-empty row, cells joined by " | ", each sheet under a "=== Hoja: <name> ===" header."""

    def get_extensions(self) -> tuple[str, ...]:
        return (".xlsx",)

    def _extract_sync(self, path: str) -> str:
        workbook = load_workbook(path, read_only=True, data_only=True)
        try:
            sheets: list[str] = []
            for worksheet in workbook.worksheets:
                lines = [f"=== Hoja: {worksheet.title} ==="]
                for row in worksheet.iter_rows(values_only=True):
                    values = [str(cell).strip() for cell in row if cell is not None and str(cell).strip()]
                    if values:
                        lines.append(" | ".join(values))
                if len(lines) > 1:
                    sheets.append("\n".join(lines))
            return "\n\n".join(sheets)
        finally:
            workbook.close()
