"""Name normalization for matching live-feed player names to the player pool.

Handles common variations between the feed and locally entered names:
- Suffixes: "Jr.", "Sr.", "II", "III"
- Punctuation: "N'Golo Kanté" → "ngolo kante"
- Accents: "Martin Ødegaard" → "martin odegaard"
- Case: "BUKAYO SAKA" → "bukayo saka"
- Extra spaces: "Kai  Havertz" → "kai havertz"
"""
import re
import unicodedata

from rapidfuzz import fuzz

# Common name suffixes that should be removed for comparison
SUFFIXES = {'jr', 'sr', 'ii', 'iii', 'iv', 'v'}

# Letters that NFD decomposition does not split into base + accent
_TRANSLITERATIONS = str.maketrans({
    'ø': 'o', 'Ø': 'O', 'æ': 'ae', 'Æ': 'AE', 'ß': 'ss',
    'đ': 'd', 'Đ': 'D', 'ł': 'l', 'Ł': 'L', 'ı': 'i',
})

FUZZY_THRESHOLD = 90


def normalize(name: str) -> str:
    """
    Normalize a player name for comparison.

    Examples:
        >>> normalize("Martin Ødegaard")
        'martin odegaard'
        >>> normalize("N'Golo Kanté")
        'ngolo kante'
        >>> normalize("Kai  Havertz")
        'kai havertz'
    """
    if not name:
        return ""

    name = _remove_suffix(name)
    name = _strip_accents(name)
    name = name.lower()
    name = re.sub(r'[^\w\s-]', '', name)
    name = name.replace('-', ' ')
    return ' '.join(name.split())


def _remove_suffix(name: str) -> str:
    parts = name.split()
    if len(parts) > 1 and parts[-1].lower().replace('.', '') in SUFFIXES:
        return ' '.join(parts[:-1])
    return name


def _strip_accents(name: str) -> str:
    # NFD splits "é" into "e" + combining accent; drop the combining marks
    decomposed = unicodedata.normalize('NFD', name.translate(_TRANSLITERATIONS))
    return ''.join(c for c in decomposed if unicodedata.category(c) != 'Mn')


def similarity(name1: str, name2: str) -> float:
    """WRatio score (0-100) between two normalized names."""
    return fuzz.WRatio(normalize(name1), normalize(name2))


def are_names_equal(name1: str, name2: str, fuzzy: bool = False) -> bool:
    """
    Check if two names refer to the same player.

    Args:
        name1: First name
        name2: Second name
        fuzzy: Also accept a WRatio score of at least FUZZY_THRESHOLD
    """
    norm1 = normalize(name1)
    norm2 = normalize(name2)

    if norm1 == norm2:
        return True

    if fuzzy and norm1 and norm2:
        return fuzz.WRatio(norm1, norm2) >= FUZZY_THRESHOLD

    return False
