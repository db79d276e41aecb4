"""
Keyword-based transaction categorization.

Categories are evaluated in the order they appear in CATEGORY_RULES and the
first category with a whole-word keyword hit wins, so the order doubles as the
tie-break between overlapping keyword sets (e.g. "UPI payment to Swiggy" is
Food & Dining, not Transfer).
"""

import logging
import re

logger = logging.getLogger(__name__)

UNCATEGORIZED = 'Uncategorized'

CATEGORY_RULES = [
    ('Food & Dining', [
        'swiggy', 'zomato', 'restaurant', 'food', 'cafe', 'coffee', 'starbucks',
        'mcdonalds', 'pizza', 'burger', 'hotel', 'dining', 'eats', 'bar', 'pub'
    ]),
    ('Travel & Transport', [
        'uber', 'ola', 'rapido', 'metro', 'railway', 'irctc', 'flight', 'airline',
        'indigo', 'air india', 'fuel', 'petrol', 'pump', 'toll', 'fastag',
        'parking', 'cab', 'auto', 'bus', 'train'
    ]),
    ('Shopping', [
        'amazon', 'flipkart', 'myntra', 'ajio', 'retail', 'store', 'mart', 'shop',
        'mall', 'ikea', 'decathlon', 'zara', 'h&m', 'uniqlo', 'rel digital', 'croma'
    ]),
    ('Groceries', [
        'blinkit', 'zepto', 'bigbasket', 'dmart', 'reliance fresh', "nature's basket",
        'grocery', 'supermarket', 'vegetable', 'fruit', 'kirana', 'milk', 'dairy'
    ]),
    ('Bills & Utilities', [
        'electricity', 'water', 'gas', 'bill', 'recharge', 'mobile', 'broadband',
        'wifi', 'jio', 'airtel', 'vi', 'bsnl', 'tatasky', 'dth', 'bescom',
        'adarni', 'mahadiscom'
    ]),
    ('Health & Wellness', [
        'pharmacy', 'medical', 'hospital', 'doctor', 'clinic', 'lab', 'health',
        'gym', 'fitness', 'medplus', 'apollo', '1mg', 'pharmeasy', 'cult'
    ]),
    ('Entertainment', [
        'netflix', 'prime', 'hotstar', 'spotify', 'movie', 'cinema', 'bookmyshow',
        'theatre', 'game', 'steam', 'playstation', 'youtube', 'apple'
    ]),
    ('Investment', [
        'zerodha', 'groww', 'upstox', 'angel', 'mutual fund', 'sip', 'stocks',
        'equity', 'trade', 'investment', 'ppf', 'nps', 'coin', 'kite'
    ]),
    ('EMI & Loans', [
        'emi', 'loan', 'finance', 'bajaj', 'credit card', 'payment', 'interest'
    ]),
    ('Salary', [
        'salary', 'payroll', 'credit', 'bonus', 'stipend'
    ]),
    ('Transfer', [
        'upi', 'transfer', 'imps', 'neft', 'rtgs', 'sent to', 'received from',
        'fund transfer', 'remittance'
    ]),
]


def _compile_keywords(keywords):
    # A keyword must not be glued to other word characters on either side
    alternatives = '|'.join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf'(?<!\w)(?:{alternatives})(?!\w)', re.IGNORECASE)


_COMPILED_RULES = [(category, _compile_keywords(keywords)) for category, keywords in CATEGORY_RULES]


def categorize_transaction(description):
    """
    Assign a category to a transaction description.

    Args:
        description (str): Transaction description

    Returns:
        str: First matching category from CATEGORY_RULES, or 'Uncategorized'
    """
    if not description or not isinstance(description, str):
        return UNCATEGORIZED

    desc = description.lower()
    for category, pattern in _COMPILED_RULES:
        if pattern.search(desc):
            return category

    logger.debug(f"No category keywords found in: {description}")
    return UNCATEGORIZED
