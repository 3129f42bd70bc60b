"""RETRO BEATS Name Variation Expander — turn one guess into many candidates.

A guess like "Super Mario Bros" should still find ``smb3_overworld.mid`` or
``SuperMarioBrothers-Theme.mid``. We generate casing, punctuation, spacing,
word-order and abbreviation variants plus known aliases; the matcher then
keeps whichever variant scores best.
"""

from __future__ import annotations

import re

# Canonical lower-case key → alternate spellings.
ALIASES: dict[str, list[str]] = {
    "mario": ["super mario bros", "super mario", "mario bros", "smb"],
    "zelda": ["legend of zelda", "the legend of zelda", "loz"],
    "pokemon": ["pokémon", "pkmn", "poke"],
    "sonic": ["sonic the hedgehog", "sth"],
    "donkey kong": ["dk", "dkc", "donkey kong country"],
    "final fantasy": ["ff", "finalfantasy"],
    "street fighter": ["sf", "sf2", "street fighter ii"],
    "mega man": ["megaman", "rockman", "mm"],
    "metroid": ["super metroid", "metroid prime"],
    "castlevania": ["akumajo dracula", "cv"],
    "kirby": ["kirbys dream land", "kirby dream land"],
    "chrono trigger": ["chrono", "ct"],
    "earthbound": ["mother 2", "mother"],
    "tetris": ["tetris theme", "korobeiniki"],
    "pac-man": ["pacman", "pac man"],
    "kingdom hearts": ["kh"],
}

# Substring substitutions applied to the normalized guess.
ABBREVIATIONS: list[tuple[str, str]] = [
    ("super", "s"),
    ("bros", "brothers"),
    ("brothers", "bros"),
    ("and", "&"),
    ("&", "and"),
]

MIN_WORD_LENGTH = 4  # words longer than 3 chars become their own candidate

_WS = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WS.sub(" ", text.lower()).strip()


def alias_variants(text: str) -> set[str]:
    """Alternates for every alias key found in the text.

    A guess that is itself a known alternate also maps back to its key.
    """
    found: set[str] = set()
    for key, alternates in ALIASES.items():
        if key in text:
            found.update(alternates)
        elif text in alternates:
            found.add(key)
    return found


def expand(text: str) -> set[str]:
    """All candidate spellings for a free-text guess."""
    base = _normalize(text)
    if not base:
        return {""}

    variants = {base}
    variants |= alias_variants(base)

    # Mechanical transforms
    variants.add("".join(ch for ch in base if ch.isalnum()))
    variants.add(_WS.sub("", base))
    variants.add(_WS.sub("-", base))

    words = base.split(" ")
    if len(words) > 1:
        variants.add(" ".join(reversed(words)))
        variants.add("".join(words))
        variants.add("-".join(words))

    for source, replacement in ABBREVIATIONS:
        if source not in base:
            continue
        if len(replacement) > len(source) and replacement in base:
            continue  # long form already spelled out
        variants.add(_normalize(base.replace(source, replacement)))

    variants.update(w for w in words if len(w) >= MIN_WORD_LENGTH)

    variants.discard("")
    return variants
