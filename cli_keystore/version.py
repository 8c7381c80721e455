"""CLI Keystore Meta information.
   CLI Keystore keeps a command-line client's secrets in a
   password-encrypted file between invocations.
"""
__title__ = 'cli_keystore'
__description__ = (
   'CLI Keystore keeps command-line client secrets in a '
   'password-encrypted local store.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2024 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/cli-keystore'
