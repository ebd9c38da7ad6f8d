#!/usr/bin/env python3
"""
Puasa desktop widget
Small always-on-top window showing:
  - Current location and date (Gregorian + Hijri)
  - Today's prayer times
  - Live countdown to the next prayer
  - Desktop notification at each prayer time, with reminders before it
"""

import datetime
import logging
import threading
import tkinter as tk

import pytz

from puasa.config import (
    clear_manual_location,
    load_manual_location,
    load_settings,
    parse_manual_location,
    save_manual_location,
    save_settings,
)
from puasa.location import get_location
from puasa.logger import setup_logging
from puasa.notifier import PlyerSink
from puasa.prayer_api import fetch_for_location, get_timezone
from puasa.schedule import NO_COUNTDOWN, PRAYER_DISPLAY, PRAYER_ICONS, PRAYER_NAMES
from puasa.session import PrayerScheduleSession, ScheduleHandoff

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Theme constants
# ──────────────────────────────────────────────────────────────────────────────
BG_DARK = "#0d1117"
BG_CARD = "#161b22"
BG_HIGHLIGHT = "#1a3a2a"
BORDER_COLOR = "#2ea043"
ACCENT_GOLD = "#f0c040"
ACCENT_GREEN = "#3fb950"
TEXT_WHITE = "#e6edf3"
TEXT_DIM = "#8b949e"
TEXT_RED = "#ff6b6b"

FONT_PIXEL = ("Courier", 10, "bold")
FONT_PIXEL_SM = ("Courier", 8)
FONT_PIXEL_LG = ("Courier", 14, "bold")
FONT_CLOCK = ("Courier", 22, "bold")

WINDOW_W = 380
WINDOW_H = 460

HANDOFF_POLL_MS = 200
REFETCH_MS = 6 * 60 * 60 * 1000  # pick up the next day's schedule


class PuasaApp:
    def __init__(self, root: tk.Tk, session: PrayerScheduleSession, handoff: ScheduleHandoff, settings: dict):
        self.root = root
        self.session = session
        self.handoff = handoff
        self.settings = settings
        self.location = {}
        self.hijri = {}
        self.prayer_rows = {}
        self._drag_x = 0
        self._drag_y = 0
        self._poll_handle = None
        self._refetch_handle = None

        session.on_update = self._on_session_update
        session.on_error = self._on_session_error

        self._setup_window()
        self._build_ui()
        self._reload_data()
        self._poll_handoff()

    # ──────────────────────────────────────────────────────────────────────
    # Window setup
    # ──────────────────────────────────────────────────────────────────────
    def _setup_window(self):
        root = self.root
        root.title("Puasa")
        root.configure(bg=BG_DARK)
        root.resizable(False, False)
        root.attributes("-topmost", True)
        x = root.winfo_screenwidth() - WINDOW_W - 40
        y = 40
        root.geometry(f"{WINDOW_W}x{WINDOW_H}+{x}+{y}")
        root.bind("<ButtonPress-1>", self._on_drag_start)
        root.bind("<B1-Motion>", self._on_drag_motion)
        root.protocol("WM_DELETE_WINDOW", self._quit)

    def _on_drag_start(self, event):
        self._drag_x = event.x_root - self.root.winfo_x()
        self._drag_y = event.y_root - self.root.winfo_y()

    def _on_drag_motion(self, event):
        self.root.geometry(f"+{event.x_root - self._drag_x}+{event.y_root - self._drag_y}")

    # ──────────────────────────────────────────────────────────────────────
    # UI construction
    # ──────────────────────────────────────────────────────────────────────
    def _build_ui(self):
        outer = tk.Frame(self.root, bg=BORDER_COLOR, bd=0)
        outer.pack(fill=tk.BOTH, expand=True, padx=2, pady=2)
        inner = tk.Frame(outer, bg=BG_DARK, bd=0)
        inner.pack(fill=tk.BOTH, expand=True, padx=1, pady=1)

        self.lbl_location = tk.Label(inner, text="📍 Detecting location…", font=FONT_PIXEL, fg=TEXT_DIM, bg=BG_DARK)
        self.lbl_location.pack(fill=tk.X, pady=(8, 0))

        self.lbl_date = tk.Label(inner, text="", font=FONT_PIXEL_SM, fg=TEXT_DIM, bg=BG_DARK)
        self.lbl_date.pack(fill=tk.X)

        self.lbl_next_name = tk.Label(inner, text="Loading…", font=FONT_PIXEL_LG, fg=ACCENT_GREEN, bg=BG_DARK)
        self.lbl_next_name.pack(fill=tk.X, pady=(10, 0))

        self.lbl_countdown = tk.Label(inner, text=NO_COUNTDOWN, font=FONT_CLOCK, fg=ACCENT_GOLD, bg=BG_DARK)
        self.lbl_countdown.pack(fill=tk.X)

        self.prayer_frame = tk.Frame(inner, bg=BG_DARK)
        self.prayer_frame.pack(fill=tk.X, padx=10, pady=8)
        self._build_prayer_rows()

        self.lbl_status = tk.Label(inner, text="", font=FONT_PIXEL_SM, fg=TEXT_RED, bg=BG_DARK, wraplength=WINDOW_W - 20)
        self.lbl_status.pack(fill=tk.X)

        btn_frame = tk.Frame(inner, bg=BG_DARK)
        btn_frame.pack(side=tk.BOTTOM, pady=6)

        self.var_notify = tk.BooleanVar(value=bool(self.settings.get("notifications_enabled", True)))
        tk.Checkbutton(
            btn_frame, text="Notifications", variable=self.var_notify, command=self._toggle_notifications,
            font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_DARK, selectcolor=BG_CARD,
            activebackground=BG_DARK, activeforeground=TEXT_WHITE,
        ).pack(side=tk.LEFT, padx=6)

        tk.Button(
            btn_frame, text=" ⟳ Refresh ", font=FONT_PIXEL_SM, fg=ACCENT_GOLD, bg=BG_CARD,
            activebackground=BG_HIGHLIGHT, bd=0, cursor="hand2", command=self._reload_data,
        ).pack(side=tk.LEFT, padx=6)

        tk.Button(
            btn_frame, text=" 📍 Location ", font=FONT_PIXEL_SM, fg=ACCENT_GREEN, bg=BG_CARD,
            activebackground=BG_HIGHLIGHT, bd=0, cursor="hand2", command=self._show_location_dialog,
        ).pack(side=tk.LEFT, padx=6)

    def _build_prayer_rows(self):
        for name in PRAYER_NAMES:
            row = tk.Frame(self.prayer_frame, bg=BG_CARD, pady=1)
            row.pack(fill=tk.X, pady=1)
            lbl_name = tk.Label(
                row, text=f" {PRAYER_ICONS[name]}  {PRAYER_DISPLAY[name]}", font=FONT_PIXEL,
                fg=TEXT_WHITE, bg=BG_CARD, anchor="w", width=24,
            )
            lbl_name.pack(side=tk.LEFT, padx=4)
            lbl_time = tk.Label(row, text="--:--", font=FONT_PIXEL, fg=TEXT_WHITE, bg=BG_CARD, anchor="e", width=7)
            lbl_time.pack(side=tk.RIGHT, padx=4)
            self.prayer_rows[name] = {"row": row, "lbl_name": lbl_name, "lbl_time": lbl_time}

    # ──────────────────────────────────────────────────────────────────────
    # Location dialog
    # ──────────────────────────────────────────────────────────────────────
    def _show_location_dialog(self):
        """Set a manual location (city/country or coordinates) or go back to IP lookup."""
        dlg = tk.Toplevel(self.root)
        dlg.title("Set Location")
        dlg.configure(bg=BG_DARK)
        dlg.resizable(False, False)
        dlg.attributes("-topmost", True)
        dlg.transient(self.root)
        dlg.grab_set()

        fields_frame = tk.Frame(dlg, bg=BG_DARK)
        fields_frame.pack(fill=tk.X, padx=16, pady=10)

        keys = ["city", "region", "country", "lat", "lon", "timezone"]
        labels = ["City:", "Region:", "Country:", "Latitude:", "Longitude:", "Timezone:"]
        entries = {}
        for i, (label, key) in enumerate(zip(labels, keys)):
            tk.Label(
                fields_frame, text=label, font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_DARK, anchor="w", width=10,
            ).grid(row=i, column=0, sticky="w", pady=2)
            ent = tk.Entry(
                fields_frame, font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_CARD,
                insertbackground=TEXT_WHITE, width=26, relief=tk.FLAT,
            )
            ent.grid(row=i, column=1, sticky="ew", pady=2, padx=(4, 0))
            if self.location.get(key) is not None:
                ent.insert(0, str(self.location[key]))
            entries[key] = ent

        lbl_error = tk.Label(dlg, text="", font=FONT_PIXEL_SM, fg=TEXT_RED, bg=BG_DARK)
        lbl_error.pack(fill=tk.X)

        def _apply():
            try:
                location = parse_manual_location({key: ent.get() for key, ent in entries.items()})
            except ValueError as exc:
                lbl_error.config(text=str(exc))
                return
            save_manual_location(location)
            dlg.destroy()
            self._reload_data()

        def _use_ip():
            clear_manual_location()
            dlg.destroy()
            self._reload_data()

        btn_frame = tk.Frame(dlg, bg=BG_DARK)
        btn_frame.pack(pady=8)
        for text, command in (("  Save  ", _apply), ("  Use IP location  ", _use_ip), ("  Cancel  ", dlg.destroy)):
            tk.Button(
                btn_frame, text=text, font=FONT_PIXEL_SM, fg=TEXT_WHITE, bg=BG_CARD,
                activebackground=BG_HIGHLIGHT, bd=0, cursor="hand2", command=command,
            ).pack(side=tk.LEFT, padx=4)

    # ──────────────────────────────────────────────────────────────────────
    # Data loading (runs in background thread)
    # ──────────────────────────────────────────────────────────────────────
    def _reload_data(self):
        self.lbl_location.config(text="📍 Refreshing…", fg=TEXT_DIM)
        t = threading.Thread(target=self._load_data, daemon=True)
        t.start()

    def _load_data(self):
        """Fetch location + prayer times in background thread."""
        try:
            location = load_manual_location() or get_location()
            tz = get_timezone(location.get("timezone"))
            today = datetime.datetime.now(tz).date()
            result = fetch_for_location(location, today, self.settings.get("method", 2))
        except Exception as exc:
            logger.error("[APP] Could not load prayer times: %s", exc)
            message = f"⚠ Could not load data: {str(exc)[:60]}"
            self.root.after(0, lambda: self._show_status(message))
            return

        timezone = result["timezone"] or location.get("timezone")
        self.handoff.put(result["timings"], timezone, {"location": location, "hijri": result["hijri"]})

    def _poll_handoff(self):
        """Apply any fetched schedule on the Tk thread."""
        update = self.handoff.drain(self.session)
        if update is not None:
            self._on_data_loaded(update.context)
        self._poll_handle = self.root.after(HANDOFF_POLL_MS, self._poll_handoff)

    def _on_data_loaded(self, context: dict):
        self.location = context.get("location") or {}
        self.hijri = context.get("hijri") or {}
        loc = self.location
        self.lbl_location.config(text=f"📍 {loc.get('city', '?')}, {loc.get('country', '?')}", fg=ACCENT_GREEN)
        self._show_status("")

        schedule = self.session.schedule
        if schedule is None:
            return
        for name, widgets in self.prayer_rows.items():
            widgets["lbl_time"].config(text=schedule.clock_time(name) if name in schedule else "--:--")

        greg = datetime.datetime.now(self.session.timezone or pytz.utc).strftime("%A, %d %B %Y")
        if self.hijri:
            hijri = self.hijri
            greg += f"  ☪ {hijri['day']} {hijri['month_name']} {hijri['year']} H"
        self.lbl_date.config(text=greg)

        if self._refetch_handle is not None:
            self.root.after_cancel(self._refetch_handle)
        self._refetch_handle = self.root.after(REFETCH_MS, self._reload_data)

    # ──────────────────────────────────────────────────────────────────────
    # Session callbacks (Tk thread)
    # ──────────────────────────────────────────────────────────────────────
    def _on_session_update(self, next_prayer, countdown: str):
        if next_prayer is None:
            self.lbl_next_name.config(text="No prayer times available")
            self.lbl_countdown.config(text=NO_COUNTDOWN)
            return

        self.lbl_next_name.config(text=f"{PRAYER_ICONS[next_prayer.name]} {PRAYER_DISPLAY[next_prayer.name]}")
        color = TEXT_RED if next_prayer.remaining_seconds < 300 else ACCENT_GOLD
        self.lbl_countdown.config(text=countdown, fg=color)
        for name, widgets in self.prayer_rows.items():
            row_bg = BG_HIGHLIGHT if name == next_prayer.name else BG_CARD
            widgets["row"].config(bg=row_bg)
            widgets["lbl_name"].config(bg=row_bg)
            widgets["lbl_time"].config(bg=row_bg)

    def _on_session_error(self, exc):
        self._show_status(f"⚠ Notification failed: {exc}")

    def _show_status(self, text: str):
        self.lbl_status.config(text=text)

    def _toggle_notifications(self):
        enabled = bool(self.var_notify.get())
        self.session.notifications_enabled = enabled
        self.settings["notifications_enabled"] = enabled
        save_settings(self.settings)

    def _quit(self):
        self.session.stop()
        if self._poll_handle is not None:
            self.root.after_cancel(self._poll_handle)
        self.root.destroy()


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────
def main():
    setup_logging()
    settings = load_settings()
    root = tk.Tk()
    session = PrayerScheduleSession(
        root,
        PlyerSink(),
        notifications_enabled=bool(settings.get("notifications_enabled", True)),
        reminder_minutes=settings.get("reminder_minutes") or (),
    )
    PuasaApp(root, session, ScheduleHandoff(), settings)
    root.mainloop()


if __name__ == "__main__":
    main()
