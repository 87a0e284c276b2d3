"""
Story write side.

  - script: the fixed dialogue appended to every verified asset
  - client: signed async client for the external story write API
"""
