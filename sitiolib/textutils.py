import re
import unicodedata

SMALL_WORDS = {
    "a", "an", "the", "and", "but", "or", "for", "nor", "on", "at", "to", "from",
    "by", "in", "of", "with", "as", "per", "is", "if", "then", "else", "when",
}

def norm_text(s) -> str:
    if s is None:
        return ""
    s = unicodedata.normalize("NFKD", str(s))
    s = "".join(ch for ch in s if not unicodedata.combining(ch))  # niño -> nino
    s = s.lower().strip()
    s = re.sub(r"[^a-z0-9\s\-/,_()&.]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s

def _cap(part: str) -> str:
    if not part:
        return part
    return part[0].upper() + part[1:].lower()

def to_title_case(s, small_words=None) -> str:
    """
    "the lord of the rings" -> "The Lord of the Rings"
    Small words stay lowercase unless first or last; hyphens become spaces,
    underscores are kept; "o'neill" -> "O'Neill".
    """
    if not s:
        return ""
    small = SMALL_WORDS | {w.lower() for w in (small_words or [])}
    tokens = re.split(r"(\s+|-|_)", str(s).strip())
    words = [i for i, t in enumerate(tokens) if t and not t.isspace() and t not in ("-", "_")]
    if not words:
        return ""
    first, last = words[0], words[-1]

    out = []
    for i, tok in enumerate(tokens):
        if tok == "-":
            out.append(" ")
        elif not tok or tok.isspace() or tok == "_":
            out.append(tok)
        elif tok.lower() in small and i not in (first, last):
            out.append(tok.lower())
        elif "'" in tok:
            out.append("'".join(_cap(p) for p in tok.split("'")))
        else:
            out.append(_cap(tok))
    return "".join(out)

# ---------- display formatting ----------
def format_number(v, fallback="-") -> str:
    if v is None:
        return fallback
    if float(v).is_integer():
        return f"{int(v):,}"
    return f"{v:,}"

def format_percentage(v, decimals=2) -> str:
    return f"{v:.{decimals}f}%"

def format_currency(v, decimals=0) -> str:
    return f"₱{v:,.{decimals}f}"

def format_currency_compact(v) -> str:
    sign = "-" if v < 0 else ""
    a = abs(v)
    if a >= 1_000_000_000:
        return f"{sign}₱{a / 1_000_000_000:.1f}B"
    if a >= 1_000_000:
        return f"{sign}₱{a / 1_000_000:.1f}M"
    if a >= 1_000:
        return f"{sign}₱{a / 1_000:.1f}K"
    return f"{sign}₱{a:.0f}"

def truncate_text(s: str, max_length: int) -> str:
    return s[:max_length] + "..." if len(s) > max_length else s
