# List Merging
import os
import logging
import tkinter as tk
import customtkinter as ctk
from tkinter import filedialog, messagebox
from tkinterdnd2 import TkinterDnD, DND_ALL

from listmerge.config import MergeSettings, load_validation_context
from listmerge.errors import ListMergeError
from listmerge.headers import HeaderCatalog, load_header_catalog
from listmerge.merger import MergeJob
from listmerge.models import ValidationContext
from listmerge.reader import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 100

ctk.set_default_color_theme("dark-blue")
ctk.set_appearance_mode("dark")


class CTkDnD(ctk.CTk, TkinterDnD.DnDWrapper):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.TkdndVersion = TkinterDnD._require(self)


class MergerGUI:
    """File selection, options and progress display for the merge job."""

    def __init__(self, catalog: HeaderCatalog = None, master=None):
        self.catalog = catalog
        self.job = None

        self.mergerApp = CTkDnD() if master is None else ctk.CTkToplevel(master)
        self.mergerApp.title("List Merging")

        self.files = []
        self.output_dir = tk.StringVar()
        self.expectations_path = tk.StringVar()
        self.status_text = tk.StringVar(value="Drop files to merge.")

        self.reference_check = tk.BooleanVar(value=False)
        self.strict_expectations = tk.BooleanVar(value=False)
        self.continue_on_errors = tk.BooleanVar(value=False)
        self.write_report = tk.BooleanVar(value=True)

        # True = dark mode
        self.theme_mode = tk.BooleanVar(value=True)

        self._build_gui()

    def _build_gui(self):
        self.mergerApp.grid_rowconfigure(0, weight=1)
        self.mergerApp.grid_columnconfigure(0, weight=1)
        self.mergerApp.grid_columnconfigure(1, weight=1)

        self.files_frame = ctk.CTkFrame(self.mergerApp)
        self.files_frame.grid(row=0, column=0, padx=10, pady=10, sticky="nsew")
        self._build_files_section(self.files_frame)

        self.options_frame = ctk.CTkFrame(self.mergerApp)
        self.options_frame.grid(row=0, column=1, padx=10, pady=10, sticky="nsew")
        self._build_options(self.options_frame)

        self.controls_frame = ctk.CTkFrame(self.mergerApp)
        self.controls_frame.grid(row=1, column=0, columnspan=2, padx=10, pady=5, sticky="ew")
        self._build_controls(self.controls_frame)

    def _build_files_section(self, parent_frame):
        font_name = "Helvetica"
        font_size = 12
        parent_frame.grid_rowconfigure(1, weight=1)
        parent_frame.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(parent_frame, text="Input files", font=(font_name, font_size, "bold")).grid(
            row=0, column=0, columnspan=2, padx=5, pady=(5, 2), sticky="w")

        self.files_box = ctk.CTkTextbox(parent_frame, height=180, width=380)
        self.files_box.grid(row=1, column=0, columnspan=2, padx=5, pady=2, sticky="nsew")
        self.files_box.configure(state="disabled")
        self.files_box.drop_target_register(DND_ALL)
        self.files_box.dnd_bind("<<Drop>>", self.drop_files)

        ctk.CTkButton(parent_frame, text="Add Files...", command=self._browse_files).grid(
            row=2, column=0, padx=5, pady=5, sticky="ew")
        ctk.CTkButton(parent_frame, text="Clear", command=self._clear_files).grid(
            row=2, column=1, padx=5, pady=5, sticky="ew")

    def _build_options(self, parent_frame):
        font_name = "Helvetica"
        font_size = 12
        parent_frame.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(parent_frame, text="Expectations:", font=(font_name, font_size)).grid(
            row=0, column=0, padx=5, pady=2, sticky="e")
        ctk.CTkEntry(parent_frame, textvariable=self.expectations_path, width=220).grid(
            row=0, column=1, padx=5, pady=2, sticky="ew")
        ctk.CTkButton(parent_frame, text="...", width=30, command=self._browse_expectations).grid(
            row=0, column=2, padx=5, pady=2)

        switches = [
            ("Reference check (re-read all files)", self.reference_check),
            ("Missing expectations are errors", self.strict_expectations),
            ("Export even if validation fails", self.continue_on_errors),
            ("Write validation report", self.write_report),
        ]
        for row_idx, (text, variable) in enumerate(switches, start=1):
            ctk.CTkSwitch(parent_frame, text=text, variable=variable).grid(
                row=row_idx, column=0, columnspan=3, padx=5, pady=4, sticky="w")

    def _build_controls(self, parent_frame):
        font_name = "Helvetica"
        font_size = 12
        ctk.CTkLabel(parent_frame, text="Output Folder:", font=(font_name, font_size)).grid(
            row=0, column=0, padx=5, pady=2, sticky="e")
        ctk.CTkEntry(parent_frame, textvariable=self.output_dir, width=300).grid(
            row=0, column=1, padx=5, pady=2, sticky="ew")
        ctk.CTkButton(parent_frame, text="Browse...", command=self._browse_output).grid(
            row=0, column=2, padx=5, pady=2)

        self.progress_bar = ctk.CTkProgressBar(parent_frame)
        self.progress_bar.set(0)
        self.progress_bar.grid(row=1, column=0, columnspan=3, padx=5, pady=(8, 2), sticky="ew")
        ctk.CTkLabel(parent_frame, textvariable=self.status_text, anchor="w", wraplength=600,
                     font=(font_name, font_size)).grid(row=2, column=0, columnspan=3, padx=5, pady=2, sticky="ew")

        self.start_button = ctk.CTkButton(parent_frame, text="Start Merge", command=self._start_merge)
        self.start_button.grid(row=3, column=0, columnspan=2, pady=10)
        self.cancel_button = ctk.CTkButton(parent_frame, text="Cancel", state="disabled", command=self._cancel_merge)
        self.cancel_button.grid(row=3, column=2, pady=10)

        # Theme toggle switch (no label) at the bottom-right of the controls frame.
        self.theme_switch = ctk.CTkSwitch(parent_frame, text="", variable=self.theme_mode,
                                          command=self.toggle_theme, switch_width=20, switch_height=10)
        self.theme_switch.place(relx=1.0, rely=1.0, anchor="se")
        parent_frame.grid_columnconfigure(1, weight=1)

    def toggle_theme(self):
        ctk.set_appearance_mode("dark" if self.theme_mode.get() else "light")

    # --- File selection ---
    def _add_files(self, paths):
        rejected = []
        for path in paths:
            if not path.lower().endswith(SUPPORTED_EXTENSIONS):
                rejected.append(os.path.basename(path))
            elif path not in self.files:
                self.files.append(path)
        self._refresh_files()
        if not self.output_dir.get() and self.files:
            self.output_dir.set(os.path.dirname(self.files[0]))
        if rejected:
            messagebox.showerror(
                "Error",
                "Unsupported file type: " + ", ".join(rejected)
                + f"\n\nSupported: {' '.join(SUPPORTED_EXTENSIONS)}",
            )

    def _refresh_files(self):
        self.files_box.configure(state="normal")
        self.files_box.delete("1.0", "end")
        self.files_box.insert("1.0", "\n".join(os.path.basename(p) for p in self.files))
        self.files_box.configure(state="disabled")

    def drop_files(self, event):
        self._add_files(list(self.mergerApp.tk.splitlist(event.data)))

    def _browse_files(self):
        patterns = " ".join(f"*{ext}" for ext in SUPPORTED_EXTENSIONS)
        paths = filedialog.askopenfilenames(filetypes=[("Lists", patterns)], title="Select files to merge")
        if paths:
            self._add_files(list(paths))

    def _clear_files(self):
        self.files = []
        self._refresh_files()

    def _browse_output(self):
        directory = filedialog.askdirectory(title="Select output folder")
        if directory:
            self.output_dir.set(directory)

    def _browse_expectations(self):
        path = filedialog.askopenfilename(filetypes=[("JSON", "*.json")], title="Select expectations file")
        if path:
            self.expectations_path.set(path)

    # --- Job handling ---
    def _build_settings(self) -> MergeSettings:
        expectations = self.expectations_path.get().strip()
        base = load_validation_context(expectations) if expectations else ValidationContext()
        context = ValidationContext(
            expected_row_counts=base.expected_row_counts,
            expected_sums=base.expected_sums,
            sum_tolerance=base.sum_tolerance,
            sum_scale=base.sum_scale,
            treat_missing_expectations_as_warning=not self.strict_expectations.get(),
            enable_reference_aggregation=self.reference_check.get() or base.enable_reference_aggregation,
        )
        return MergeSettings(
            output_dir=self.output_dir.get().strip(),
            continue_on_validation_errors=self.continue_on_errors.get(),
            write_validation_report=self.write_report.get(),
            validation_context=context,
        )

    def _start_merge(self):
        if not self.files:
            self.status_text.set("No files selected")
            return
        if not self.output_dir.get().strip():
            messagebox.showerror("Error", "Please provide a valid output folder.")
            return

        try:
            settings = self._build_settings()
            if self.catalog is None:
                self.catalog = load_header_catalog(settings.headers_dir)
        except ListMergeError as e:
            messagebox.showerror("Error", str(e))
            return

        self.progress_bar.set(0)
        self.start_button.configure(state="disabled")
        self.cancel_button.configure(state="normal")
        logger.info("Starting merge of %d files into %s", len(self.files), settings.output_dir)
        self.job = MergeJob(self.files, settings, self.catalog).start()
        self.mergerApp.after(POLL_INTERVAL_MS, self._poll_job)

    def _cancel_merge(self):
        if self.job is not None:
            self.job.cancel()
            self.status_text.set("Cancelling after the current step...")

    def _poll_job(self):
        for event in self.job.poll():
            self.progress_bar.set(event.stage / event.total if event.total else 0)
            self.status_text.set(event.message)
            if event.terminal:
                self._finish(event)
                return
        self.mergerApp.after(POLL_INTERVAL_MS, self._poll_job)

    def _finish(self, event):
        self.start_button.configure(state="normal")
        self.cancel_button.configure(state="disabled")
        self.job = None

        if event.kind == "failed":
            messagebox.showerror("Merge failed", event.message)
        elif event.kind == "done":
            result = event.result
            text = f"Merged file saved at\n\n{result.output_path}\n\n{result.summary}"
            if result.report_path is not None:
                text += f"\n\nReport: {result.report_path}"
            messagebox.showinfo("Success", text)

    def run(self):
        if isinstance(self.mergerApp, ctk.CTk):
            self.mergerApp.mainloop()


if __name__ == "__main__":
    app = MergerGUI()
    app.run()
