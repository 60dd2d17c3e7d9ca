# Core project switcher logic: store, group resolution, presence, sections
