## ================================================================================
## window.py is a part of privbroker, which is distributed under the
## following license:
##
## Copyright (C) 2018 Jonas Møller (no) <jonasmo441@gmail.com>
## All rights reserved.
##
## Redistribution and use in source and binary forms, with or without
## modification, are permitted provided that the following conditions are met:
## 
## 1. Redistributions of source code must retain the above copyright notice, this
##    list of conditions and the following disclaimer.
## 2. Redistributions in binary form must reproduce the above copyright notice,
##    this list of conditions and the following disclaimer in the documentation
##    and/or other materials provided with the distribution.
## 
## THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND
## ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
## WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
## DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
## FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
## DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
## SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
## CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
## OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
## OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
## SOFTWARE.
## ================================================================================

import sys
import logging
from typing import Optional

import gi
gi.require_version("Gtk", "3.0")
from gi.repository import Gtk, Gio, GLib, GObject

from . import priv_actions
from .broker import getBroker
from .command import Command
from .gate import CredentialGate, GateError
from .locations import resourcePath
from .results import ElevationOutcome
from .settings import Settings

log = logging.getLogger(__name__)

class MainWindow(GObject.GObject):
    def __init__(self, **kwargs):
        super().__init__()
        self.builder = Gtk.Builder()
        self.builder.add_from_file(resourcePath("resources", kwargs["ui"]))
        self.window = self.builder.get_object("MainWindow")
        self.window.set_application(kwargs["application"])
        self.window.connect("destroy", lambda *_: self.quit())
        self.window.present()

    def quit(self):
        pass

    def get(self, obj_name: str):
        return self.builder.get_object(obj_name)

class ListingWindow(MainWindow):
    """
    Lists a directory as root. The listing runs on the broker's worker
    threads; everything that touches widgets goes back to the main loop
    through GLib.idle_add.
    """
    __gtype_name__ = "ListingWindow"

    def __init__(self, path="/root", settings: Optional[Settings] = None, **kwargs):
        super().__init__(ui="window.ui", **kwargs)
        self.path = path
        self.store = self.get("output_store")
        self.status = self.get("status_label")
        self.refresh_button = self.get("refresh_button")
        self.dialog = self.get("password_dialog")
        self.dialog.connect("response", self.onPasswordResponse)
        self.dialog.connect("delete-event", self.onPasswordDelete)

        self.gate = CredentialGate(on_prompt=self.onPrompt)
        self.broker = getBroker(self.gate, settings)
        self.builder.connect_signals(self)
        self.refresh()

    def quit(self):
        ## A prompt nobody can answer anymore would hold a worker forever
        self.gate.cancel()
        self.broker.shutdown(wait=False)

    def setStatus(self, text):
        self.status.set_text(text)

    def refresh(self):
        self.refresh_button.set_sensitive(False)
        self.setStatus(f"Listing {self.path} ...")
        fut = self.broker.run_async(priv_actions.listingCommand(self.path))
        fut.add_done_callback(lambda f: GLib.idle_add(self.showOutcome, f))

    def on_refresh(self, btn):
        self.refresh()

    def showOutcome(self, fut):
        self.refresh_button.set_sensitive(True)
        self.store.clear()
        try:
            outcome: ElevationOutcome = fut.result()
        except Exception as e:
            log.exception("Listing %s failed", self.path)
            self.setStatus(f"Error: {e}")
            return False
        if outcome.ok:
            for line in outcome.output:
                self.store.append([line])
            self.setStatus(f"{self.path}: {len(outcome.output)} lines")
        else:
            self.setStatus(f"Unable to list {self.path}: {outcome}")
        ## Remove the idle source
        return False

    ## Called on a worker thread by the gate
    def onPrompt(self, command: Optional[Command]):
        GLib.idle_add(self.showPasswordDialog, command)

    def showPasswordDialog(self, command):
        label = self.get("password_label")
        label.set_text(f"Polkit refused to run {command}.\n"
                       "Enter your password to run it with sudo.")
        self.get("password_entry").set_text("")
        self.dialog.show_all()
        return False

    def onPasswordResponse(self, dialog, response):
        entry = self.get("password_entry")
        if response == Gtk.ResponseType.OK and entry.get_text():
            try:
                self.gate.supplyCredential(bytearray(entry.get_text().encode("utf-8")))
            except GateError:
                log.warning("Password dialog answered after the request went away")
        else:
            self.gate.cancel()
        entry.set_text("")
        dialog.hide()

    def onPasswordDelete(self, dialog, event):
        self.gate.cancel()
        dialog.hide()
        return True

class Application(Gtk.Application):
    def __init__(self, settings=None):
        super().__init__(application_id="org.privbroker.Lister",
                         flags=Gio.ApplicationFlags.FLAGS_NONE)
        self.settings = settings
        self.win = None

    def do_activate(self):
        if self.win is None:
            self.win = ListingWindow(application=self, settings=self.settings)

def main(version=None):
    settings = Settings.load()
    logging.basicConfig(level=settings.log_level.upper(),
                        format="%(name)s: %(levelname)s: %(message)s")
    app = Application(settings)
    return app.run(sys.argv)

if __name__ == "__main__":
    sys.exit(main())
