import pytest

from respot.spotify_id import FileId, SpotifyAudioType, SpotifyId, SpotifyIdError

CONV_VALID = [
    (
        238762092608182713602505436543891614649,
        SpotifyAudioType.TRACK,
        "spotify:track:5sWHDYs0csV6RS48xBl0tH",
        "b39fe8081e1f4c54be38e8d6f9f12bb9",
        "5sWHDYs0csV6RS48xBl0tH",
        bytes([179, 159, 232, 8, 30, 31, 76, 84, 190, 56, 232, 214, 249, 241, 43, 185]),
    ),
    (
        204841891221366092811751085145916697048,
        SpotifyAudioType.TRACK,
        "spotify:track:4GNcXTGWmnZ3ySrqvol3o4",
        "9a1b1cfbc6f244569ae0356c77bbe9d8",
        "4GNcXTGWmnZ3ySrqvol3o4",
        bytes([154, 27, 28, 251, 198, 242, 68, 86, 154, 224, 53, 108, 119, 187, 233, 216]),
    ),
    (
        204841891221366092811751085145916697048,
        SpotifyAudioType.PODCAST,
        "spotify:episode:4GNcXTGWmnZ3ySrqvol3o4",
        "9a1b1cfbc6f244569ae0356c77bbe9d8",
        "4GNcXTGWmnZ3ySrqvol3o4",
        bytes([154, 27, 28, 251, 198, 242, 68, 86, 154, 224, 53, 108, 119, 187, 233, 216]),
    ),
    (
        204841891221366092811751085145916697048,
        SpotifyAudioType.NON_PLAYABLE,
        "spotify:unknown:4GNcXTGWmnZ3ySrqvol3o4",
        "9a1b1cfbc6f244569ae0356c77bbe9d8",
        "4GNcXTGWmnZ3ySrqvol3o4",
        bytes([154, 27, 28, 251, 198, 242, 68, 86, 154, 224, 53, 108, 119, 187, 233, 216]),
    ),
]

CONV_INVALID = [
    (
        "spotify:arbitrarywhatever:5sWHDYs0Bl0tH",
        "ZZZZZ8081e1f4c54be38e8d6f9f12bb9",
        "!!!!!Ys0csV6RS48xBl0tH",
        bytes([154, 27, 28, 251, 198, 242, 68, 86, 154, 224, 5, 3, 108, 119, 187, 233, 216, 255]),
    ),
    (
        "spotify:arbitrarywhatever5sWHDYs0csV6RS48xBl0tH",
        "--------------------",
        "....................",
        bytes([154, 27, 28, 251]),
    ),
    (
        "spotify:azb:aRS48xBl0tH",
        "--------------------",
        "....................",
        bytes([154, 27, 28, 251]),
    ),
]


@pytest.mark.parametrize("case", CONV_VALID)
def test_from_base62(case):
    id_, _, _, _, base62, _ = case
    assert SpotifyId.from_base62(base62).id == id_


@pytest.mark.parametrize("case", CONV_INVALID)
def test_from_base62_invalid(case):
    with pytest.raises(SpotifyIdError):
        SpotifyId.from_base62(case[2])


@pytest.mark.parametrize("case", CONV_VALID)
def test_to_base62(case):
    id_, kind, _, _, base62, _ = case
    assert SpotifyId(id_, kind).to_base62() == base62


@pytest.mark.parametrize("case", CONV_VALID)
def test_from_base16(case):
    id_, _, _, base16, _, _ = case
    assert SpotifyId.from_base16(base16).id == id_


@pytest.mark.parametrize("case", CONV_INVALID)
def test_from_base16_invalid(case):
    with pytest.raises(SpotifyIdError):
        SpotifyId.from_base16(case[1])


@pytest.mark.parametrize("case", CONV_VALID)
def test_to_base16(case):
    id_, kind, _, base16, _, _ = case
    assert SpotifyId(id_, kind).to_base16() == base16


@pytest.mark.parametrize("case", CONV_VALID)
def test_from_uri(case):
    id_, kind, uri, _, _, _ = case
    actual = SpotifyId.from_uri(uri)
    assert actual.id == id_
    assert actual.audio_type == kind


@pytest.mark.parametrize("case", CONV_INVALID)
def test_from_uri_invalid(case):
    with pytest.raises(SpotifyIdError):
        SpotifyId.from_uri(case[0])


def test_from_uri_requires_prefix():
    with pytest.raises(SpotifyIdError):
        SpotifyId.from_uri("track:5sWHDYs0csV6RS48xBl0tH")


@pytest.mark.parametrize("case", CONV_VALID)
def test_to_uri(case):
    id_, kind, uri, _, _, _ = case
    assert SpotifyId(id_, kind).to_uri() == uri


@pytest.mark.parametrize("case", CONV_VALID)
def test_from_raw(case):
    id_, _, _, _, _, raw = case
    assert SpotifyId.from_raw(raw).id == id_


@pytest.mark.parametrize("case", CONV_INVALID)
def test_from_raw_invalid(case):
    with pytest.raises(SpotifyIdError):
        SpotifyId.from_raw(case[3])


@pytest.mark.parametrize("case", CONV_VALID)
def test_to_raw(case):
    id_, kind, _, _, _, raw = case
    assert SpotifyId(id_, kind).to_raw() == raw


def test_from_raw_defaults_to_track():
    assert SpotifyId.from_raw(CONV_VALID[0][5]).audio_type is SpotifyAudioType.TRACK


def test_audio_type_parse():
    assert SpotifyAudioType.parse("track") is SpotifyAudioType.TRACK
    assert SpotifyAudioType.parse("episode") is SpotifyAudioType.PODCAST
    assert SpotifyAudioType.parse("playlist") is SpotifyAudioType.NON_PLAYABLE


def test_zero_id_is_padded():
    zero = SpotifyId(0)
    assert SpotifyId.from_base62(zero.to_base62()).id == 0
    assert len(zero.to_base62()) == 22
    assert len(zero.to_base16()) == 32


def test_base62_overflow_rejected():
    with pytest.raises(SpotifyIdError):
        SpotifyId.from_base62("z" * 30)


def test_file_id_base16_round_trip():
    raw = bytes(range(20))
    file_id = FileId(raw)
    text = file_id.to_base16()
    assert len(text) == 40
    assert bytes.fromhex(text) == raw
    assert str(file_id) == text


def test_file_id_wrong_length():
    with pytest.raises(ValueError):
        FileId(b"\x00" * 19)


def test_file_id_ordering():
    assert FileId(b"\x00" * 20) < FileId(b"\x00" * 19 + b"\x01")