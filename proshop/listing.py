import math

ALL_CATEGORIES = 'All'
ALL_LABELS = {
    'en': 'All',
    'id': 'Semua',
}


def stable_sort(records, field, descending=False):
    """Sort by ``field`` keeping the incoming order for ties; missing values go last."""
    present = [record for record in records if _value(record, field) is not None]
    missing = [record for record in records if _value(record, field) is None]
    return sorted(present, key=lambda record: _value(record, field), reverse=descending) + missing


def apply_ordering(records, ordering):
    """Order by several ``(field, descending)`` keys, the first key winning."""
    records = list(records)
    for field, descending in reversed(tuple(ordering)):
        records = stable_sort(records, field, descending)
    return records


def _value(record, field):
    if isinstance(record, dict):
        return record.get(field)
    return getattr(record, field, None)


class Page:
    def __init__(self, items, page, per_page, total):
        self.items = items
        self.page = page
        self.per_page = per_page
        self.total = total

    @property
    def pages(self):
        return max(1, math.ceil(self.total / self.per_page)) if self.per_page else 1

    @property
    def has_prev(self):
        return self.page > 1

    @property
    def has_next(self):
        return self.page < self.pages

    def to_dict(self, serialize=None):
        serialize = serialize or (lambda item: item)
        return {
            'items': [serialize(item) for item in self.items],
            'page': self.page,
            'pages': self.pages,
            'per_page': self.per_page,
            'total': self.total,
        }


class ListingView:
    """Client-side filtering over an already loaded list.

    Categories are whatever values appear in the records, so a misspelt
    category shows up as its own bucket.
    """

    def __init__(self, records, category_field=None, language='en'):
        self.records = list(records)
        self.category_field = category_field
        self.language = language

    @property
    def all_label(self):
        return ALL_LABELS.get(self.language, ALL_LABELS['en'])

    def _category(self, record):
        return _value(record, self.category_field) if self.category_field else None

    def count_by_category(self):
        counts = {}
        for record in self.records:
            category = self._category(record)
            if category is None:
                continue
            counts[category] = counts.get(category, 0) + 1
        return counts

    def categories(self):
        return [ALL_CATEGORIES] + list(self.count_by_category())

    def apply_filter(self, category=ALL_CATEGORIES):
        if not category or category == ALL_CATEGORIES or not self.category_field:
            return list(self.records)
        return [record for record in self.records if self._category(record) == category]

    def page(self, number=1, per_page=12, category=ALL_CATEGORIES):
        items = self.apply_filter(category)
        per_page = max(1, int(per_page))
        total = len(items)
        pages = max(1, math.ceil(total / per_page))
        number = min(max(1, int(number)), pages)
        start = (number - 1) * per_page
        return Page(items[start:start + per_page], number, per_page, total)
