"""
Ingestion of lab soil-test workbooks.

Modules
-------
spreadsheet : read_sheet() (openpyxl) + extract_readings() /
              extract_metadata() / extract_parameter_rows() over a
              coordinate → value mapping + SpreadsheetFormatError.
"""
