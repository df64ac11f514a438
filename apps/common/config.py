"""
Journal configuration.

``JournalConfig`` is an immutable snapshot of the journal settings: the
``JOURNAL_PORTAL`` defaults from Django settings overridden by any
``SystemSetting`` rows. Workflow operations receive it as an argument so
tests can pass a fixed configuration.
"""
import dataclasses
import logging
from decimal import Decimal

from django.conf import settings

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class JournalConfig:
    journal_name: str = 'Journal of Applied Research'
    journal_abbreviation: str = 'JAR'
    journal_issn: str = ''
    doi_prefix: str = '10.XXXX'
    apc_amount: Decimal = Decimal('299.00')
    apc_currency: str = 'INR'
    review_deadline_days: int = 21
    reminder_days_before_due: int = 3
    max_reviewers_per_submission: int = 3
    min_reviewers_for_decision: int = 2

    # SystemSetting key -> (field name, converter)
    SETTING_KEYS = {
        'journal_name': ('journal_name', str),
        'journal_abbreviation': ('journal_abbreviation', str),
        'journal_issn': ('journal_issn', str),
        'doi_prefix': ('doi_prefix', str),
        'apc_amount': ('apc_amount', Decimal),
        'apc_currency': ('apc_currency', str),
        'review_deadline_days': ('review_deadline_days', int),
        'reminder_days_before_due': ('reminder_days_before_due', int),
        'max_reviewers_per_submission': ('max_reviewers_per_submission', int),
        'min_reviewers_for_decision': ('min_reviewers_for_decision', int),
    }

    @classmethod
    def defaults(cls):
        """Configuration built only from the ``JOURNAL_PORTAL`` settings dict."""
        portal = getattr(settings, 'JOURNAL_PORTAL', {})
        values = {}
        for field in dataclasses.fields(cls):
            setting_name = field.name.upper()
            if setting_name in portal:
                values[field.name] = portal[setting_name]
        return cls(**values)

    @classmethod
    def load(cls):
        """Defaults overridden by the stored ``SystemSetting`` rows."""
        from apps.common.models import SystemSetting

        config = cls.defaults()
        overrides = {}
        for setting in SystemSetting.objects.filter(key__in=cls.SETTING_KEYS):
            field_name, convert = cls.SETTING_KEYS[setting.key]
            try:
                value = setting.typed_value()
                overrides[field_name] = convert(value)
            except Exception as e:
                logger.error(f"Ignoring invalid system setting {setting.key}={setting.value!r}: {e}")
        return dataclasses.replace(config, **overrides) if overrides else config

    def as_dict(self):
        return {key: getattr(self, field) for key, (field, _) in self.SETTING_KEYS.items()}
