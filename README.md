# respot

`respot` is a library of client-side building blocks for talking to
Spotify's access points and for acting as a Spotify Connect device on the
local network. Python 3.10 or later is required; the only runtime
dependency is `cryptography`.

## What is in it

- **`respot.spotify_id`**: `SpotifyId` converts between base62, base16,
  raw 16-byte and `spotify:{type}:{id}` URI forms (`from_base62`,
  `from_base16`, `from_raw`, `from_uri`, `to_base62`, `to_base16`,
  `to_raw`, `to_uri`); invalid input raises `SpotifyIdError`.
  `SpotifyAudioType` is the kind of item (track, episode or unknown) and
  `FileId` names a 20-byte audio or image file.
- **`respot.util`**: `SeqGenerator`, sequence numbers that wrap around at a
  chosen bit width.
- **`respot.config`**: `SessionConfig`, `ConnectConfig` and the
  `DeviceType` enum, with `DeviceType.from_str` and display names via
  `str()`. Also the version constants `SEMVER`, `VERSION_STRING`,
  `BUILD_ID` and `BUILD_DATE`.
- **`respot.diffie_hellman`**: `DhLocalKeys` for the Diffie-Hellman
  exchange over the fixed 768-bit group, and `powm`.
- **`respot.handshake`**: `compute_keys`, which derives the challenge and
  the send and receive keys from the shared secret and the exchanged
  packets.
- **`respot.authentication`**: `Credentials`, built from a username and
  password (`with_password`) or from an encrypted blob
  (`with_blob`), with `to_json` / `from_json` round trips;
  `AuthenticationType` lists the login kinds.
- **`respot.cache`**: `Cache` stores credentials, the volume and audio
  files. With a size limit, the least recently used audio files are deleted
  once the limit is exceeded (`SizeLimiter`, `FsSizeLimiter`).
  `remove_file` raises `RemoveFileError` when a file cannot be removed.
- **`respot.channel`**: `ChannelManager` allocates channel ids and routes
  incoming packets; each `Channel` is an async iterator of `HeaderEvent`
  and `DataEvent`, with `headers()` and `data()` views. Failures raise
  `ChannelError`.
- **`respot.audio_key`**: `AudioKeyManager` sends key requests through a
  callback you supply and resolves them as answers are dispatched;
  `build_key_request` builds the request payload.
- **`respot.apresolve`**: `apresolve` asks the resolver service for an
  access point and falls back to `ap.spotify.com:443` on failure;
  `try_apresolve` raises `ApResolveError` instead; `select_access_point`
  picks from a list.
- **`respot.proxytunnel`**: `proxy_connect` opens an HTTP `CONNECT` tunnel
  over a pair of asyncio streams.
- **`respot.discovery`**: `DiscoveryServer` runs an HTTP server in a
  background thread that answers `getInfo` and `addUser` requests and hands
  out the received `Credentials` through `next_credentials`.
  `RequestHandler` holds the request logic on its own; `DiscoveryConfig`
  sets the device id, name and type.
- **`respot.metadata`**: country restriction checks
  (`countrylist_contains`, `parse_restrictions`, `Restriction`), metadata
  request addresses (`metadata_url`) and cover image request payloads
  (`build_cover_request`).

## Examples

Identifiers:

```python
from respot.spotify_id import SpotifyAudioType, SpotifyId

track = SpotifyId.from_uri("spotify:track:5sWHDYs0csV6RS48xBl0tH")
assert track.audio_type is SpotifyAudioType.TRACK
print(track.to_base16())   # b39fe8081e1f4c54be38e8d6f9f12bb9
print(track.to_base62())   # 5sWHDYs0csV6RS48xBl0tH
print(track.to_uri())      # spotify:track:5sWHDYs0csV6RS48xBl0tH
```

Device types:

```python
from respot.config import DeviceType

kind = DeviceType.from_str("speaker")
print(str(kind))  # Speaker
```

Credentials and the cache:

```python
from respot.authentication import Credentials
from respot.cache import Cache

password = "password"
credentials = Credentials.with_password("user", password)

cache = Cache("cache/credentials", "cache/volume", "cache/audio", 10_000_000)
cache.save_credentials(credentials)
cache.save_volume(32768)

restored = cache.credentials()
assert restored.username == "user"
assert cache.volume() == 32768
```

Sequence numbers wrap around at the chosen width:

```python
from respot.util import SeqGenerator

seq = SeqGenerator(0xFFFF, 16)
print(seq.get(), seq.get())  # 65535 0
```

Waiting for a Spotify client to hand over credentials:

```python
import hashlib

from respot.config import DeviceType
from respot.discovery import DiscoveryConfig, DiscoveryServer

device_id = hashlib.sha1(b"Librespot").hexdigest()
config = DiscoveryConfig(device_id=device_id, device_type=DeviceType.COMPUTER)

with DiscoveryServer(config) as server:
    print("listening on port", server.port)
    received = server.next_credentials(timeout=60)
    print("received credentials for", received.username)
```

## What it does not do

The package provides the pieces, not a client. It does not open or keep a
session with an access point: there is no packet encryption for the
connection, no building or parsing of the handshake and login messages, no
request/response layer on top of the connection, no fetching or decoding
of metadata, and no audio download, decryption or playback. The discovery
server answers HTTP requests only; it does not advertise itself over mDNS
or DNS-SD, so clients find it only if told its address. There is no
command-line program.

## Tests

The test suite uses pytest and pytest-asyncio, available through the
`test` extra.