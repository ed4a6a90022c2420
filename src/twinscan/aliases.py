from twinscan.core.models import ScanConfig

PARTIAL_HASH_CHOICES = list(ScanConfig.PARTIAL_HASH_ALGORITHMS)

PARTIAL_HASH_HELP_TEXT = (
    "Digest used for the leading-window pre-filter:\n"
    "  sha256 : cryptographic digest (default)\n"
    "  xxhash : faster xxHash64; matches are still verified with a full SHA-256\n"
    "Example    : %(prog)s -i ~/Downloads --partial-hash xxhash\n"
)

MATCH_TYPE_LABELS = {
    "exact": "EXACT",
    "metadata": "METADATA",
    "fuzzy_name": "FUZZY",
}

EPILOG_TEXT = """
Examples:
  Basic usage - find duplicates in Downloads folder
  %(prog)s -i ~/Downloads

  Only PDF files whose name contains "invoice", three levels deep at most
  %(prog)s -i ~/Documents -t pdf -n invoice --max-depth 3

  Exact groups whose files start with a given text, as JSON (for scripts)
  %(prog)s -i ./project -s "Copyright" --json > report.json

  Free-text request, restricted to a sandbox
  %(prog)s --query "duplicates under ./docs that are .md files" --allowed-root .

  Give up after 5 seconds and print what was found so far
  %(prog)s -i / --timeout 5000

Files are never modified. Press Ctrl+C to stop a scan and print partial results.
"""
