import re

ONES = ("", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
        "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
        "Seventeen", "Eighteen", "Nineteen")
TENS = ("", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety")
SCALES = ((10 ** 9, "Billion"), (10 ** 6, "Million"), (1000, "Thousand"))


def next_number(queryset, field, prefix, width):
    """Next ``<prefix><n>`` in the owner's sequence, zero-padded to ``width``.

    Numbers that don't follow the pattern (user-supplied ones) are ignored.
    """
    pattern = re.compile(re.escape(prefix) + r"(\d+)$")
    highest = 0
    for value in queryset.filter(**{f"{field}__startswith": prefix}).values_list(field, flat=True):
        match = pattern.match(value)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:0{width}d}"


def _hundreds(n):
    words = []
    if n >= 100:
        words += [ONES[n // 100], "Hundred"]
        n %= 100
    if n >= 20:
        words.append(TENS[n // 10])
        n %= 10
    if n:
        words.append(ONES[n])
    return words


def number_to_words(number):
    if number == 0:
        return "Zero"
    words = []
    for scale, name in SCALES:
        if number >= scale:
            words += _hundreds(number // scale) + [name]
            number %= scale
    words += _hundreds(number)
    return " ".join(words)


def amount_in_words(amount, currency=None):
    """1200.50 -> "One Thousand Two Hundred Dollars and Fifty Cents Only"."""
    whole = int(amount)
    cents = int((amount - whole) * 100)
    if currency:
        unit = currency
    else:
        unit = "Dollar" if whole == 1 else "Dollars"
    if whole == 0 and cents == 0:
        return f"Zero {unit} Only"
    text = f"{number_to_words(whole)} {unit}"
    if cents:
        text += f" and {number_to_words(cents)} Cent{'' if cents == 1 else 's'}"
    return text + " Only"
