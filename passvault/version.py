"""Passvault Meta information.
   Passvault keeps service credentials encrypted under a master password.
"""
__title__ = 'passvault'
__description__ = (
   'Passvault keeps service credentials encrypted at rest '
   'under a key derived from a master password.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2024 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
