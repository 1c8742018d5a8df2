"""Pure domain core: amounts, hierarchy walks, trial-balance math, clock."""
