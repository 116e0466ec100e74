"""Shroud Meta information.
   Shroud is a local, file-backed vault that seals named secrets
   under a password-protected master keypair.
"""
__title__ = 'shroud'
__description__ = (
   'Shroud is a local, file-backed vault that seals named secrets '
   'under a password-protected master keypair.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Shroud Authors'
__author__ = 'Shroud Authors'
__author_email__ = 'shroud@users.noreply.github.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/shroud-vault/shroud'
