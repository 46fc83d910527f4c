"""
Infobox extraction from Wikipedia wikitext.

Video game articles carry a `{{Infobox video game | key = value | ...}}`
template. This module finds it, splits it into parameters, maps parameter
names onto our field names through a declarative alias table, and cleans the
wiki markup out of every value.

Example:
    fields = parse_infobox(wikitext)
    # {'developer': 'Nintendo EPD', 'platforms': ['Wii U', 'Nintendo Switch'],
    #  'release_date': '2017-03-03', ...}
"""

from typing import Dict, List, Optional, Union
from datetime import datetime
import html
import logging
import re

logger = logging.getLogger(__name__)


# =============================================================================
# TABLES
# =============================================================================

# Template names, tried in order
INFOBOX_TEMPLATES = (
    'Infobox video game',
    'Infobox VG',
    'Video game infobox',
    'Infobox game',
)

# canonical field -> infobox parameter names
FIELD_ALIASES = {
    'title': ('title', 'name'),
    'developer': ('developer', 'developers'),
    'publisher': ('publisher', 'publishers'),
    'release_date': ('released', 'release', 'release date', 'first release'),
    'platforms': ('platforms', 'platform'),
    'genre': ('genre', 'genres'),
    'modes': ('modes', 'mode'),
    'series': ('series',),
    'engine': ('engine',),
    'director': ('director', 'directors'),
    'producer': ('producer', 'producers'),
    'designer': ('designer', 'designers'),
    'programmer': ('programmer', 'programmers'),
    'artist': ('artist', 'artists'),
    'writer': ('writer', 'writers'),
    'composer': ('composer', 'composers'),
    'image': ('image', 'cover'),
    'website': ('website', 'official website'),
}

ALIAS_LOOKUP = {
    alias: canonical
    for canonical, aliases in FIELD_ALIASES.items()
    for alias in aliases
}

LIST_FIELDS = {'platforms', 'genre', 'modes'}
NAME_LIST_FIELDS = {'developer', 'publisher'}

CREDIT_FIELDS = ('director', 'producer', 'designer', 'programmer', 'artist', 'writer', 'composer')

# Templates whose whole content is citation noise
CITATION_TEMPLATES = ('cite', 'citation', 'efn', 'sfn', 'refn', 'r')

# Templates taking year|month|day arguments
DATE_TEMPLATES = ('start date', 'release date', 'start date and age', 'release date and age')

MONTHS = {
    'january': 1, 'february': 2, 'march': 3, 'april': 4,
    'may': 5, 'june': 6, 'july': 7, 'august': 8,
    'september': 9, 'october': 10, 'november': 11, 'december': 12,
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'jun': 6, 'jul': 7,
    'aug': 8, 'sep': 9, 'sept': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

GENERIC_DATE_FORMATS = ('%Y-%m-%d', '%Y/%m/%d', '%d/%m/%Y', '%m/%d/%Y', '%d.%m.%Y', '%Y-%m')

FieldValue = Union[str, List[str]]


# =============================================================================
# REGEXES
# =============================================================================

COMMENT_RE = re.compile(r'<!--.*?-->', re.S)
REF_RE = re.compile(r'<ref[^>/]*/>|<ref[^>]*>.*?</ref>', re.S | re.I)
BR_RE = re.compile(r'<br\s*/?>', re.I)
# Bulleted or numbered list lines, as used bare or inside {{Plainlist}} / {{flatlist}}
LIST_MARKER_RE = re.compile(r'(?:^|\n)[ \t]*[*#]+[ \t]*')
WIKILINK_RE = re.compile(r'\[\[([^|\]]*\|)?([^\]]*)\]\]')
EXTERNAL_LINK_RE = re.compile(r'\[https?://[^\s\]]*(?:\s+([^\]]*))?\]')
TEMPLATE_RE = re.compile(r'\{\{([^{}]*)\}\}')
HTML_TAG_RE = re.compile(r'<[^>]*>')
REF_MARKER_RE = re.compile(r'\[\d+\]')
BOLD_ITALIC_RE = re.compile(r"'{2,}")
WHITESPACE_RE = re.compile(r'\s+')

FULL_DATE_MDY_RE = re.compile(r'([a-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})')
FULL_DATE_DMY_RE = re.compile(r'(\d{1,2})\s+([a-z]+)\.?,?\s+(\d{4})')
MONTH_YEAR_RE = re.compile(r'([a-z]+)\.?,?\s+(\d{4})')
YEAR_ONLY_RE = re.compile(r'^(\d{4})$')


# =============================================================================
# LOCATING THE INFOBOX
# =============================================================================

def find_infobox(wikitext: str) -> Optional[str]:
    """
    Return the parameter body of the first video game infobox, or None.

    The block is closed by brace-depth matching, so nested templates such as
    {{Video game release|...}} stay inside it.
    """
    if not wikitext:
        return None

    for name in INFOBOX_TEMPLATES:
        words = r"[\s_]+".join(re.escape(word) for word in name.split())
        pattern = re.compile(r"\{\{\s*" + words + r"\s*(?=[|}<\n])", re.I)
        match = pattern.search(wikitext)
        if not match:
            continue

        depth = 0
        i = match.start()
        while i < len(wikitext):
            if wikitext.startswith('{{', i):
                depth += 1
                i += 2
            elif wikitext.startswith('}}', i):
                depth -= 1
                i += 2
                if depth == 0:
                    return wikitext[match.end():i - 2]
            else:
                i += 1

        # Unterminated template: take the rest of the page
        logger.debug(f"Infobox '{name}' is not closed, using rest of page")
        return wikitext[match.end():]

    return None


def split_parameters(body: str) -> List[str]:
    """Split a template body on '|' separators that are not nested in {{ }} or [[ ]]."""
    params = []
    current = []
    depth = 0
    i = 0
    while i < len(body):
        pair = body[i:i + 2]
        if pair in ('{{', '[['):
            depth += 1
            current.append(pair)
            i += 2
            continue
        if pair in ('}}', ']]'):
            depth = max(depth - 1, 0)
            current.append(pair)
            i += 2
            continue
        char = body[i]
        if char == '|' and depth == 0:
            params.append(''.join(current))
            current = []
        else:
            current.append(char)
        i += 1
    params.append(''.join(current))
    return [p for p in params if p.strip()]


def canonical_field(name: str) -> Optional[str]:
    """Map an infobox parameter name onto our field name."""
    key = WHITESPACE_RE.sub(' ', name.replace('_', ' ')).strip().lower()
    return ALIAS_LOOKUP.get(key)


# =============================================================================
# VALUE CLEANING
# =============================================================================

def _replace_template(match: re.Match) -> str:
    parts = match.group(1).split('|')
    name = parts[0].strip().lower()
    if name.split(' ')[0] in CITATION_TEMPLATES:
        return ''
    args = [p.strip() for p in parts[1:] if '=' not in p and p.strip()]

    # {{Start date|2017|3|3}} -> 2017-03-03
    if name in DATE_TEMPLATES and args and all(a.isdigit() for a in args[:3]):
        numbers = [int(a) for a in args[:3]] + [1, 1]
        try:
            return datetime(numbers[0], numbers[1], numbers[2]).date().isoformat()
        except ValueError:
            pass

    return ', '.join(args)


def clean_value(value: str) -> str:
    """
    Strip wiki markup from an infobox value.

    [[Target|Display]] -> Display, [http://x Display] -> Display,
    {{nowrap|X}} -> X, {{ubl|A|B}} -> "A, B", citations and <ref>s removed,
    <br> and "* item" lines turned into list separators, remaining tags and
    [1] markers removed.
    """
    if not value:
        return ''

    value = COMMENT_RE.sub('', value)
    value = REF_RE.sub('', value)
    value = BR_RE.sub(', ', value)
    value = LIST_MARKER_RE.sub(', ', value)
    value = WIKILINK_RE.sub(lambda m: m.group(2), value)
    value = EXTERNAL_LINK_RE.sub(lambda m: m.group(1) or '', value)

    # Innermost templates first until none are left
    previous = None
    while previous != value:
        previous = value
        value = TEMPLATE_RE.sub(_replace_template, value)

    value = HTML_TAG_RE.sub('', value)
    value = REF_MARKER_RE.sub('', value)
    value = BOLD_ITALIC_RE.sub('', value)
    value = html.unescape(value)
    value = WHITESPACE_RE.sub(' ', value)
    value = re.sub(r'\s+,', ',', value)
    value = re.sub(r'(,\s*){2,}', ', ', value)
    return value.strip(' ,;')


def split_list(value: str) -> List[str]:
    seen: Dict[str, None] = {}
    for item in re.split(r'[,;]', value):
        item = item.strip()
        if item:
            seen.setdefault(item, None)
    return list(seen)


# =============================================================================
# DATES
# =============================================================================

def _iso(year: str, month: int, day: Union[str, int] = 1) -> Optional[str]:
    try:
        return datetime(int(year), month, int(day)).date().isoformat()
    except ValueError:
        return None


def normalize_date(value: str) -> str:
    """
    Normalize an infobox date to YYYY-MM-DD.

    Tries, in order: full date ("March 3, 2017" / "3 March 2017"), month and
    year ("March 2017" -> 2017-03-01), a bare year ("2017" -> 2017-01-01),
    then a handful of numeric formats. Returns the input unchanged when
    nothing matches.
    """
    if not value:
        return ''

    text = value.lower()

    for match in FULL_DATE_MDY_RE.finditer(text):
        month = MONTHS.get(match.group(1))
        if month:
            iso = _iso(match.group(3), month, match.group(2))
            if iso:
                return iso

    for match in FULL_DATE_DMY_RE.finditer(text):
        month = MONTHS.get(match.group(2))
        if month:
            iso = _iso(match.group(3), month, match.group(1))
            if iso:
                return iso

    for match in MONTH_YEAR_RE.finditer(text):
        month = MONTHS.get(match.group(1))
        if month:
            return _iso(match.group(2), month)

    match = YEAR_ONLY_RE.match(text.strip())
    if match:
        return f"{match.group(1)}-01-01"

    for fmt in GENERIC_DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date().isoformat()
        except ValueError:
            continue

    return value


# =============================================================================
# PARSING
# =============================================================================

def process_field(field_name: str, value: str) -> FieldValue:
    if field_name in LIST_FIELDS:
        return split_list(value)
    if field_name == 'release_date':
        return normalize_date(value)
    if field_name in NAME_LIST_FIELDS:
        return ', '.join(split_list(value))
    return value


def parse_infobox_fields(body: str) -> Dict[str, FieldValue]:
    """Map and clean every recognised `key = value` parameter (first one wins)."""
    fields: Dict[str, FieldValue] = {}

    for param in split_parameters(body):
        if '=' not in param:
            continue
        name, raw_value = param.split('=', 1)
        field_name = canonical_field(name)
        if not field_name or field_name in fields:
            continue

        value = clean_value(raw_value)
        if not value:
            continue

        processed = process_field(field_name, value)
        if processed:
            fields[field_name] = processed

    return fields


def parse_infobox(wikitext: str) -> Dict[str, FieldValue]:
    """
    Extract game fields from an article's wikitext.

    Returns:
        Mapping of canonical field name to cleaned value ({} when the article
        has no video game infobox)
    """
    body = find_infobox(wikitext)
    if body is None:
        logger.info("No infobox found in wikitext")
        return {}
    return parse_infobox_fields(body)
