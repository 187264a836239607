from typing import Iterable

from ..utils.htmpl import H, Node, html
from ..utils.json import scriptjson

HLS_JS: str = "https://cdnjs.cloudflare.com/ajax/libs/hls.js/1.5.15/hls.min.js"

# Both pages read the files from a global `data` value, which is injected
# as a separate script after theirs.

COMMON_JS: str = """\
"use strict";
function rawURL(file) {
	return "raw/" + file.split("/").map(encodeURIComponent).join("/");
}
function link(file) {
	const a = document.createElement("a");
	a.href = rawURL(file);
	a.target = "_blank";
	a.rel = "noopener noreferrer";
	a.textContent = file;
	return a;
}
"""

LIST_JS: str = """\
document.addEventListener("DOMContentLoaded", () => {
	const parent = document.getElementById("parent");
	data.files.forEach((file, i) => {
		const li = document.createElement("li");
		li.id = "d" + i;
		li.appendChild(link(file));
		parent.appendChild(li);
	});
});
"""

PLAYER_JS: str = """\
function player(i, file) {
	const d = document.createElement("div");
	d.id = "d" + i;
	const video = document.createElement("video");
	video.id = "vid" + i;
	video.controls = true;
	video.muted = true;
	video.preload = "none";
	video.disablePictureInPicture = true;
	video.disableRemotePlayback = true;
	video.setAttribute("controlslist", "nodownload noremoteplayback");
	video.addEventListener("loadstart", () => { video.playbackRate = 2; });
	if (file.endsWith(".m3u8")) {
		if (!(window.Hls && Hls.isSupported())) {
			console.log("HLS is not supported for " + file);
			return null;
		}
		const hls = new Hls();
		hls.loadSource(rawURL(file));
		hls.attachMedia(video);
	} else {
		const source = document.createElement("source");
		source.src = rawURL(file);
		video.appendChild(source);
	}
	d.appendChild(link(file));
	d.appendChild(video);
	return d;
}
document.addEventListener("DOMContentLoaded", () => {
	const parent = document.getElementById("players");
	// Videos only start after being visible for a second, so that
	// scrolling through doesn't load all of them.
	const observer = new IntersectionObserver((entries) => {
		entries.forEach((entry) => {
			const video = entry.target;
			if (entry.isIntersecting) {
				if (video.paused && !video.playTimeout) {
					video.playTimeout = setTimeout(() => {
						video.playTimeout = null;
						video.play().catch(() => {});
					}, 1000);
				}
			} else {
				if (video.playTimeout) {
					clearTimeout(video.playTimeout);
					video.playTimeout = null;
				}
				if (!video.paused) {
					video.pause();
				}
			}
		});
	});
	data.files.forEach((file, i) => {
		// Segments are played through their playlists
		if (file.endsWith(".ts")) {
			return;
		}
		const d = player(i, file);
		if (d) {
			// Newest names sort last, so they are shown first
			parent.insertAdjacentElement("afterbegin", d);
			observer.observe(d.querySelector("video"));
		}
	});
});
"""

PLAYER_CSS: str = """\
video {
	width: 100%;
}
"""


def data(files: Iterable[str]) -> Node:
	"""Returns the script defining the `data` global with the given files."""
	return H.script(f"'use strict';const data = {scriptjson({'files': list(files)})};")


def page(title: str, head: list[Node], body: list[Node]) -> str:
	return "".join(
		html(
			H.html(
				H.head(
					H.meta(charset="utf-8"),
					H.meta(
						name="viewport", content="width=device-width, initial-scale=1"
					),
					H.title(title),
					*head,
				),
				H.body(*body),
			),
			doctype="html",
		)
	)


def listPage(files: Iterable[str]) -> str:
	"""The page listing all the files as links."""
	return page(
		"Files",
		[],
		[
			H.div(H.ul(id="parent")),
			H.script(COMMON_JS + LIST_JS),
			data(files),
		],
	)


def playerPage(files: Iterable[str]) -> str:
	"""The page with a lazily started player for each file."""
	return page(
		"Videos",
		[H.style(PLAYER_CSS), H.script(src=HLS_JS, defer=True)],
		[
			H.div(id="players"),
			H.script(COMMON_JS + PLAYER_JS),
			data(files),
		],
	)


# EOF
