"""Neutron Cache Meta information.
   Neutron Cache keeps session data and derived secrets encrypted on disk.
"""
__title__ = 'neutron_cache'
__description__ = (
   'Neutron Cache keeps session data and derived secrets '
   'encrypted on disk between runs.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2026 NeutronDrive contributors'
__author__ = 'NeutronDrive contributors'
__author_email__ = 'neutrondrive@users.noreply.github.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/neutrondrive/neutron-cache'
