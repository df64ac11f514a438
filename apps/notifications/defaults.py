"""
Default email templates installed by ``manage.py seed_email_templates``.
"""

DEFAULT_EMAIL_TEMPLATES = [
    {
        'name': 'submission_received',
        'description': 'Sent to the author when a manuscript is submitted',
        'subject': 'Submission Received - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ author_name }},</p>'
            '<p>Thank you for submitting "{{ manuscript_title }}" to {{ journal_name }}. '
            'Your manuscript is now under initial review.</p>'
            '<p>Submission ID: {{ submission_id }}</p>'
        ),
        'variables': ['author_name', 'manuscript_title', 'journal_name', 'submission_id'],
    },
    {
        'name': 'status_changed',
        'description': 'Sent to the author whenever the manuscript status changes',
        'subject': 'Manuscript Status Update - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ author_name }},</p>'
            '<p>The status of "{{ manuscript_title }}" changed to <strong>{{ new_status }}</strong>.</p>'
            '{% if comments %}<p>Editor comments:</p><blockquote>{{ comments }}</blockquote>{% endif %}'
        ),
        'variables': ['author_name', 'manuscript_title', 'new_status', 'comments'],
    },
    {
        'name': 'reviewer_invitation',
        'description': 'Invitation to review a manuscript',
        'subject': 'Invitation to Review - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ reviewer_name }},</p>'
            '<p>You have been invited to review "{{ manuscript_title }}" for {{ journal_name }}.</p>'
            '<p>{% if abstract %}{{ abstract }}{% endif %}</p>'
            '<p>Please respond by visiting {{ review_url }}. The review is due on {{ due_date }}.</p>'
        ),
        'variables': ['reviewer_name', 'manuscript_title', 'journal_name', 'abstract', 'review_url', 'due_date'],
    },
    {
        'name': 'review_reminder',
        'description': 'Reminder for an open review',
        'subject': 'Review Reminder - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ reviewer_name }},</p>'
            '<p>This is a reminder that your review of "{{ manuscript_title }}" is due on {{ due_date }}'
            '{% if overdue %} and is now overdue{% endif %}.</p>'
        ),
        'variables': ['reviewer_name', 'manuscript_title', 'due_date', 'overdue'],
    },
    {
        'name': 'review_deadline_extended',
        'description': 'Sent to the reviewer when the editor extends the deadline',
        'subject': 'Review Deadline Extended - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ reviewer_name }},</p>'
            '<p>The deadline for your review of "{{ manuscript_title }}" is now {{ due_date }}.</p>'
        ),
        'variables': ['reviewer_name', 'manuscript_title', 'due_date'],
    },
    {
        'name': 'review_completed',
        'description': 'Sent to handling editors when a review is submitted',
        'subject': 'Review Completed - {{ manuscript_title }}',
        'html_content': (
            '<p>A review has been completed for "{{ manuscript_title }}".</p>'
            '<p>Completed reviews: {{ completed_reviews }}</p>'
        ),
        'variables': ['manuscript_title', 'completed_reviews'],
    },
    {
        'name': 'review_thank_you',
        'description': 'Thank-you note to the reviewer after submission',
        'subject': 'Thank You for Your Review',
        'html_content': (
            '<p>Dear {{ reviewer_name }},</p>'
            '<p>Thank you for reviewing "{{ manuscript_title }}" for {{ journal_name }}. '
            'You can download your reviewer certificate from your dashboard.</p>'
        ),
        'variables': ['reviewer_name', 'manuscript_title', 'journal_name'],
    },
    {
        'name': 'editorial_decision',
        'description': 'Editorial decision letter',
        'subject': 'Editorial Decision - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ author_name }},</p>'
            '<p>The editorial decision on "{{ manuscript_title }}" is: <strong>{{ decision }}</strong>.</p>'
            '<blockquote>{{ comments }}</blockquote>'
        ),
        'variables': ['author_name', 'manuscript_title', 'decision', 'comments'],
    },
    {
        'name': 'revision_submitted',
        'description': 'Sent to handling editors when the author submits a revision',
        'subject': 'Revision Submitted - {{ manuscript_title }}',
        'html_content': (
            '<p>Revision {{ revision_number }} of "{{ manuscript_title }}" has been submitted by {{ author_name }}.</p>'
        ),
        'variables': ['manuscript_title', 'revision_number', 'author_name'],
    },
    {
        'name': 'payment_pending',
        'description': 'APC payment request',
        'subject': 'Payment Required - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ author_name }},</p>'
            '<p>Please complete the article processing charge of {{ currency }} {{ amount }} '
            'for "{{ manuscript_title }}". Invoice: {{ invoice_number }}.</p>'
        ),
        'variables': ['author_name', 'manuscript_title', 'currency', 'amount', 'invoice_number'],
    },
    {
        'name': 'payment_received',
        'description': 'APC payment confirmation',
        'subject': 'Payment Received - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ author_name }},</p>'
            '<p>We received your payment of {{ currency }} {{ amount }} for "{{ manuscript_title }}".</p>'
        ),
        'variables': ['author_name', 'manuscript_title', 'currency', 'amount'],
    },
    {
        'name': 'article_published',
        'description': 'Sent to the author when the article is published',
        'subject': 'Your Article Has Been Published - {{ manuscript_title }}',
        'html_content': (
            '<p>Dear {{ author_name }},</p>'
            '<p>Congratulations! "{{ manuscript_title }}" has been published in {{ journal_name }}.</p>'
            '<p>DOI: {{ doi }}</p>'
        ),
        'variables': ['author_name', 'manuscript_title', 'journal_name', 'doi'],
    },
]
