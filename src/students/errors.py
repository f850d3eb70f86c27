"""Exceptions raised before a bulk import reaches the database."""


class ImportInputError(ValueError):
    """Client-side problem with the uploaded CSV (reported as HTTP 400)."""

    status_code = 400


class CsvMissingError(ImportInputError):
    """No multipart file, raw CSV body, or JSON ``csv`` field was sent."""

    def __init__(self, message=None):
        super().__init__(
            message
            or 'CSV not provided. Send multipart "file" or raw text/csv or JSON { csv }'
        )


class CsvParseError(ImportInputError):
    """The payload could not be read as comma-separated text."""

    def __init__(self, reason):
        super().__init__(f"CSV parse error: {reason}")


class EmptyCsvError(ImportInputError):
    """The CSV has a header row but no data rows."""

    def __init__(self):
        super().__init__("CSV contains no data rows.")
