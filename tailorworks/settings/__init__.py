# tailorworks/settings/__init__.py

import os

settings_module = os.getenv('DJANGO_SETTINGS_MODULE', 'tailorworks.settings.local')

if settings_module.endswith('.test'):
    from .test import *
elif 'cloud' in settings_module:
    from .cloud import *
else:
    from .local import *
