"""Authentication and authorization.

Learn: Everything security-sensitive lives in this package.
1. Accounts → email/password (peppered bcrypt) → signed session token
2. Requests → bearer header or session cookie → validated claims → subject id
3. Mutations on owned resources → ownership guard

All of it is built from one immutable SecretMaterial created at startup.
"""
