"""CSV export helper shared by the report downloads."""
import csv

from django.http import HttpResponse

# Lets Excel detect UTF-8 when the file is opened directly.
UTF8_BOM = "\ufeff"


def _cell(row, field):
    if callable(field):
        return field(row)
    value = row.get(field)
    return "" if value is None else str(value)


def rows_to_csv_response(rows, columns, filename):
    """Write ``rows`` (dicts) as a CSV attachment named ``<filename>.csv``.

    ``columns`` is a list of ``(field, header)`` pairs; ``field`` is either a
    key of the row or a callable receiving the row.
    """
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}.csv"'
    response.write(UTF8_BOM)

    writer = csv.writer(response)
    writer.writerow([header for _, header in columns])
    writer.writerows([_cell(row, field) for field, _ in columns] for row in rows)
    return response
