"""Demo library for trying the app without analyzing any files."""

from typing import List

from .models import Track

DEMO_TRACKS: List[Track] = [
    Track(id="demo1.mp3", title="Cosmic Echoes", artist="Stellar Drifters", key="8A", bpm=124, energy=7),
    Track(id="demo2.mp3", title="Neon Sunset", artist="Grid Runner", key="8B", bpm=125, energy=8),
    Track(id="demo3.mp3", title="Deep Ocean Groove", artist="Aqua Funk", key="7A", bpm=122, energy=6),
    Track(id="demo4.mp3", title="Lunar Phases", artist="Night Voyager", key="9A", bpm=124, energy=7),
    Track(id="demo5.mp3", title="Rhythm of the Dunes", artist="Desert Wave", key="10A", bpm=128, energy=9),
    Track(id="demo6.mp3", title="First Light", artist="Solaris", key="7B", bpm=122, energy=5),
]
