# relay/constants.py
"""Spotify endpoints and fixed values used by the relay."""

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API = "https://api.spotify.com/v1"

SCOPES = "user-read-playback-state user-modify-playback-state streaming"

# Change this to your desired playlist
PLAYLIST_ID = "5ZLzQVTP13MFjQLOeCsygX"
