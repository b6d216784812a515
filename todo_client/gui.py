"""Tk GUI for the todo client."""

import asyncio
import concurrent.futures
import logging
import threading
import tkinter as tk
from tkinter import ttk, scrolledtext
from typing import Any, Callable, Coroutine, Dict, Optional

from .config import Config
from .logs import memory_handler
from .models import FilterMode, Theme
from .state import ClientState, apply_filter
from .store import TaskStore

logger = logging.getLogger(__name__)

PALETTES: Dict[Theme, Dict[str, str]] = {
    Theme.LIGHT: {
        'bg': '#f4f4f4', 'fg': '#333333', 'field': '#ffffff', 'accent': '#007bff',
        'muted': '#555555', 'done': 'gray', 'error': '#c0392b',
    },
    Theme.DARK: {
        'bg': '#1e1e1e', 'fg': '#ffffff', 'field': '#2a2a2a', 'accent': '#4a90e2',
        'muted': '#cccccc', 'done': 'gray', 'error': '#ff6b6b',
    },
}


class AsyncRunner:
    """Runs an asyncio event loop on a daemon thread for the store's requests."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.start()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def submit(self, coro: Coroutine) -> concurrent.futures.Future:
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call(self, fn: Callable, *args) -> None:
        self.loop.call_soon_threadsafe(fn, *args)

    def stop(self):
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout=2)


class TodoGui:
    """Main window: entry form, filter bar, task list and activity log.

    All store calls run on the runner's loop so the store is only ever
    touched from one thread; state changes come back through ``after``.
    """

    def __init__(self, root: tk.Tk, store: TaskStore, runner: AsyncRunner,
                 config: Optional[Config] = None):
        self.root = root
        self.root.title("To-Do List")
        self.root.geometry("800x600")

        self.store = store
        self.runner = runner
        self.config = config
        self._row_ids: Dict[str, Any] = {}
        self._editing_id = None
        self.style = ttk.Style(self.root)
        if 'clam' in self.style.theme_names():
            self.style.theme_use('clam')

        self._setup_ui()
        self._setup_bindings()
        self.store.subscribe(self._on_state)
        self._render(self.store.state)
        self.runner.submit(self.store.refresh())

    def _setup_ui(self):
        """Setup the main UI components."""
        main_frame = ttk.Frame(self.root, style='App.TFrame')
        main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)
        self.main_frame = main_frame

        # Header
        header = ttk.Frame(main_frame, style='App.TFrame')
        header.pack(fill=tk.X, pady=(0, 10))
        ttk.Label(header, text="To-Do List", style='Title.TLabel').pack(side=tk.LEFT)
        self.dark_var = tk.BooleanVar(value=self.store.state.theme is Theme.DARK)
        ttk.Checkbutton(header, text="Dark mode", variable=self.dark_var,
                        command=self._toggle_theme, style='App.TCheckbutton').pack(side=tk.RIGHT)

        # Form
        form = ttk.Frame(main_frame, style='App.TFrame')
        form.pack(fill=tk.X)
        ttk.Label(form, text="Title", style='App.TLabel').grid(row=0, column=0, sticky=tk.W)
        self.title_var = tk.StringVar()
        self.title_entry = ttk.Entry(form, textvariable=self.title_var)
        self.title_entry.grid(row=0, column=1, sticky=tk.EW, padx=5, pady=2)
        ttk.Label(form, text="Description", style='App.TLabel').grid(row=1, column=0, sticky=tk.W)
        self.desc_var = tk.StringVar()
        ttk.Entry(form, textvariable=self.desc_var).grid(row=1, column=1, sticky=tk.EW, padx=5, pady=2)
        self.submit_button = ttk.Button(form, text="Add Task", command=self._submit_form)
        self.submit_button.grid(row=0, column=2, rowspan=2, padx=(5, 0), sticky=tk.NS)
        self.cancel_button = ttk.Button(form, text="Cancel", command=self._cancel_edit)
        form.grid_columnconfigure(1, weight=1)

        # Filter + search bar
        bar = ttk.Frame(main_frame, style='App.TFrame')
        bar.pack(fill=tk.X, pady=10)
        self.filter_var = tk.StringVar(value=self.store.state.filter.value)
        for mode in FilterMode:
            ttk.Radiobutton(bar, text=mode.label, value=mode.value, variable=self.filter_var,
                            command=self._change_filter, style='App.TRadiobutton').pack(side=tk.LEFT, padx=(0, 5))
        ttk.Button(bar, text="Refresh", command=self._refresh).pack(side=tk.RIGHT)
        self.search_var = tk.StringVar()
        search_entry = ttk.Entry(bar, textvariable=self.search_var, width=20)
        search_entry.pack(side=tk.RIGHT, padx=5)
        search_entry.bind('<Return>', lambda e: self._search())
        ttk.Label(bar, text="Search:", style='App.TLabel').pack(side=tk.RIGHT)

        # Task list
        self.tree = ttk.Treeview(main_frame, columns=('done', 'title', 'description'),
                                 show='headings', height=12)
        self.tree.heading('done', text='Done')
        self.tree.heading('title', text='Title')
        self.tree.heading('description', text='Description')
        self.tree.column('done', width=50, anchor=tk.CENTER, stretch=False)
        self.tree.column('title', width=250)
        self.tree.pack(fill=tk.BOTH, expand=True)

        actions = ttk.Frame(main_frame, style='App.TFrame')
        actions.pack(fill=tk.X, pady=5)
        ttk.Button(actions, text="Toggle done", command=self._toggle_selected).pack(side=tk.LEFT)
        ttk.Button(actions, text="Edit", command=self._edit_selected).pack(side=tk.LEFT, padx=5)
        ttk.Button(actions, text="Delete", command=self._delete_selected).pack(side=tk.LEFT)

        ttk.Label(main_frame, text="Activity Log", style='App.TLabel').pack(anchor=tk.W)
        self.log_text = scrolledtext.ScrolledText(main_frame, height=6)
        self.log_text.pack(fill=tk.X)

        self.status_var = tk.StringVar(value="Loading...")
        self.status_bar = ttk.Label(main_frame, textvariable=self.status_var, relief=tk.SUNKEN,
                                    style='Status.TLabel')
        self.status_bar.pack(fill=tk.X, pady=(10, 0))

    def _setup_bindings(self):
        """Setup keyboard and mouse bindings."""
        self.tree.bind('<Double-Button-1>', lambda e: self._toggle_selected())
        self.tree.bind('<Delete>', lambda e: self._delete_selected())
        self.title_entry.bind('<Return>', lambda e: self._submit_form())
        self.root.bind('<Escape>', lambda e: self._cancel_edit())
        self.root.bind('<F5>', lambda e: self._refresh())
        self.root.protocol('WM_DELETE_WINDOW', self._close)

    # ---- store calls (all go through the loop thread) ----

    def _run(self, coro: Coroutine, on_done: Optional[Callable[[Any], None]] = None) -> None:
        future = self.runner.submit(coro)
        if on_done is not None:
            future.add_done_callback(lambda f: self.root.after(0, on_done, f.result()))

    def _selected_id(self) -> Optional[Any]:
        selection = self.tree.selection()
        if not selection:
            return None
        return self._row_ids.get(selection[0])

    def _submit_form(self):
        title = self.title_var.get()
        if not title.strip():
            self.status_var.set("Title must not be empty")
            return
        self._run(self.store.submit(title, self.desc_var.get()), self._after_submit)

    def _after_submit(self, task):
        if task is not None and self.store.state.editing_id is None:
            self.title_var.set('')
            self.desc_var.set('')

    def _cancel_edit(self):
        self.runner.call(self.store.cancel_edit)

    def _edit_selected(self):
        task_id = self._selected_id()
        if task_id is not None:
            self.runner.call(self.store.begin_edit, task_id)

    def _toggle_selected(self):
        task_id = self._selected_id()
        if task_id is not None:
            self._run(self.store.toggle_complete(task_id))

    def _delete_selected(self):
        task_id = self._selected_id()
        if task_id is not None:
            self._run(self.store.delete(task_id))

    def _change_filter(self):
        self._run(self.store.set_filter(self.filter_var.get()))

    def _search(self):
        self._run(self.store.set_search(self.search_var.get()))

    def _refresh(self):
        self._run(self.store.refresh())

    def _toggle_theme(self):
        theme = Theme.DARK if self.dark_var.get() else Theme.LIGHT
        self.runner.call(self.store.set_theme, theme)
        if self.config is not None:
            self.config.theme = theme.value

    # ---- rendering ----

    def _on_state(self, state: ClientState):
        # called on the loop thread
        self.root.after(0, self._render, state)

    def _render(self, state: ClientState):
        self._apply_theme(state.theme)
        self._sync_form(state)

        selected = self._selected_id()
        for item in self.tree.get_children():
            self.tree.delete(item)
        self._row_ids = {}
        for task in apply_filter(state.tasks, state.filter):
            item = self.tree.insert('', 'end', values=(
                '✓' if task.completed else '', task.title, task.description,
            ), tags=('done',) if task.completed else ())
            self._row_ids[item] = task.id
            if task.id == selected:
                self.tree.selection_set(item)

        if state.last_error is not None:
            self.status_var.set(str(state.last_error))
            self.status_bar.configure(style='Error.TLabel')
        else:
            pending = sum(1 for t in state.tasks if not t.completed)
            text = f"Tasks: {len(state.tasks)}, Pending: {pending}"
            if state.loading:
                text += " (syncing...)"
            self.status_var.set(text)
            self.status_bar.configure(style='Status.TLabel')

        self._show_log()

    def _sync_form(self, state: ClientState):
        """Refill the form whenever the task being edited changes."""
        if state.editing_id == self._editing_id:
            return
        if state.editing_id is not None:
            task = self.store.known_task(state.editing_id)
            self.title_var.set(task.title if task is not None else '')
            self.desc_var.set(task.description if task is not None else '')
            self.submit_button.config(text="Update Task")
            self.cancel_button.grid(row=0, column=3, rowspan=2, padx=(5, 0), sticky=tk.NS)
        else:
            self.title_var.set('')
            self.desc_var.set('')
            self.submit_button.config(text="Add Task")
            self.cancel_button.grid_remove()
        self._editing_id = state.editing_id

    def _apply_theme(self, theme: Theme):
        p = PALETTES[theme]
        self.style.configure('App.TFrame', background=p['bg'])
        self.style.configure('App.TLabel', background=p['bg'], foreground=p['fg'])
        self.style.configure('Title.TLabel', background=p['bg'], foreground=p['fg'], font=('TkDefaultFont', 18, 'bold'))
        self.style.configure('App.TCheckbutton', background=p['bg'], foreground=p['fg'])
        self.style.configure('App.TRadiobutton', background=p['bg'], foreground=p['fg'])
        self.style.configure('Status.TLabel', background=p['field'], foreground=p['muted'])
        self.style.configure('Error.TLabel', background=p['field'], foreground=p['error'])
        self.style.configure('Treeview', background=p['field'], fieldbackground=p['field'], foreground=p['fg'])
        self.tree.tag_configure('done', foreground=p['done'])
        self.log_text.configure(background=p['field'], foreground=p['muted'])
        self.root.configure(background=p['bg'])

    def _show_log(self):
        self.log_text.delete(1.0, tk.END)
        self.log_text.insert(tk.END, '\n'.join(memory_handler.messages()))
        self.log_text.see(tk.END)

    def _close(self):
        future = self.runner.submit(self.store.aclose())
        try:
            future.result(timeout=2)
        except Exception:
            logger.warning('could not close the HTTP client cleanly', exc_info=True)
        self.runner.stop()
        self.root.destroy()


def run_gui(config: Config) -> None:
    """Main entry point."""
    root = tk.Tk()
    runner = AsyncRunner()
    store = TaskStore.from_config(config)
    TodoGui(root, store, runner, config)
    root.mainloop()
