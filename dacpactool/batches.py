"""Split a SQL Server script into its GO-separated batches
"""
import re

#
# A GO line may end in CR when the script has windows line endings; the
# batches themselves keep whatever line endings they came with
#
R_SEPARATOR = re.compile(r"^[ \t]*GO[ \t]*\r?$", flags=re.IGNORECASE | re.MULTILINE)

def batches(text):
    """Generate (position, batch) for each non-empty batch in `text`

    The position is 1-based over every segment between GO lines, including
    the blank ones which are not yielded, so that a batch keeps the same
    number however much whitespace surrounds it.
    """
    for position, segment in enumerate(R_SEPARATOR.split(text), 1):
        batch = segment.strip()
        if batch:
            yield position, batch
