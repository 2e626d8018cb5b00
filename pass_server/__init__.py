"""
Publish a pass password store as static files for a web server.

pass-indexer copies the encrypted secrets of a password store into a target
directory, re-encoding each one with ASCII armour. It also writes an index of
every secret's domain, path and username, encrypted to the keys listed in the
store's .gpg-id file. Secrets are never decrypted.

\b
    $ pass-indexer --store ~/.password-store --target ~/.pass-site
    $ ls ~/.pass-site
    example.com  index.asc

pass-proxy lets older browser clients read that directory. They send POST
requests with JSON bodies. The proxy fetches the matching files from the web
server that serves the target directory.

\b
    $ pass-proxy --socket 127.0.0.1:7277 --target http://127.0.0.1:80/
"""

__version__ = '1.0.0'
